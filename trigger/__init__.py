"""
Trigger pipeline — turns queue message payloads into job launches.

  normalizer  → canonical payload (unwraps SNS-style envelopes)
  parameters  → typed StringParam / BoolParam values
  resolver    → job handle + eligibility
  dispatcher  → scheduler submission with a unique cause
  processor   → TriggerProcessor.trigger(payload), the public entry point
"""
