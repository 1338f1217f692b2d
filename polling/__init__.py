"""
Polling mode — periodic change checks that launch a job without parameters.

Use this for jobs whose data source cannot publish to the queue. Each job
with a poll source gets a PollingTrigger; all of them share one
SequentialExecutionQueue keyed by job name.
"""
