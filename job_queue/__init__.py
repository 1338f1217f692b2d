"""
Message Queue — Delivers trigger payloads to the processor.

- SQS long polling (production) and in-memory asyncio.Queue (dev)
- TriggerConsumer receives, runs trigger(), deletes on any outcome
"""
