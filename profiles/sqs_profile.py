"""
SQS Profile — credentials and queue location for one SQS queue.

A profile names its queue either by full URL
(https://sqs.<region>.amazonaws.com/<account>/<name>) or by bare name. With a
URL the region and endpoint come from the URL itself; with a bare name the
queue is looked up and created if it does not exist yet.

The boto3 client is built once, when the profile is configured, and handed
to whatever needs it.
"""
from __future__ import annotations

import re
from typing import Any, Optional

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import SecretStr

from activity.log import ActivityLog
from jobs.registry import JobRegistry
from trigger.processor import TriggerProcessor

logger = structlog.get_logger()

QUEUE_URL_PATTERN = re.compile(r"^https://sqs\.(.+?)\.amazonaws\.com/(.+?)/(.+)$")
ENDPOINT_PATTERN = re.compile(r"(sqs\..+?\.amazonaws\.com)")

DEFAULT_REGION = "us-east-1"


class SqsProfile:

    def __init__(
        self,
        access_key_id: str,
        secret_access_key: SecretStr | str,
        sqs_queue: str,
        region: str = DEFAULT_REGION,
        client: Any = None,
    ):
        self.access_key_id = access_key_id
        if not isinstance(secret_access_key, SecretStr):
            secret_access_key = SecretStr(secret_access_key or "")
        self.secret_access_key = secret_access_key
        self.sqs_queue = sqs_queue
        self._url_match = QUEUE_URL_PATTERN.match(sqs_queue or "")
        self.region = self._url_match.group(1) if self._url_match else region
        self.client = client if client is not None else self.build_client()
        self._queue_url: Optional[str] = None

    @property
    def url_specified(self) -> bool:
        return self._url_match is not None

    @property
    def queue_name(self) -> str:
        return self._url_match.group(3) if self._url_match else self.sqs_queue

    def endpoint_url(self) -> Optional[str]:
        if not self.url_specified:
            return None
        m = ENDPOINT_PATTERN.search(self.sqs_queue)
        return f"https://{m.group(1)}" if m else None

    def build_client(self):
        kwargs: dict[str, Any] = {"region_name": self.region}
        if self.access_key_id:
            kwargs["aws_access_key_id"] = self.access_key_id
            kwargs["aws_secret_access_key"] = self.secret_access_key.get_secret_value()
        endpoint = self.endpoint_url()
        if endpoint:
            kwargs["endpoint_url"] = endpoint
        client = boto3.client("sqs", **kwargs)
        logger.info("sqs_client_initialized", queue=self.sqs_queue, region=self.region)
        return client

    def queue_url(self) -> str:
        """The queue URL, creating the queue when only a name was configured."""
        if self.url_specified:
            return self.sqs_queue
        if self._queue_url is None:
            self._queue_url = self._find_or_create_queue(self.sqs_queue)
        return self._queue_url

    def _find_or_create_queue(self, name: str) -> str:
        resp = self.client.list_queues(QueueNamePrefix=name)
        for url in resp.get("QueueUrls", []):
            if url.endswith("/" + name):
                return url
        url = self.client.create_queue(QueueName=name)["QueueUrl"]
        logger.info("sqs_queue_created", queue=name, url=url)
        return url

    def validate(self) -> tuple[bool, str]:
        try:
            url = self.queue_url()
        except (BotoCoreError, ClientError) as e:
            logger.warning("sqs_profile_invalid", queue=self.sqs_queue, error=str(e))
            return False, "Failed to validate the account"
        if not url:
            return False, "Failed to validate the account"
        return True, f"Verified SQS Queue {url}"

    def trigger_processor(self, registry: JobRegistry,
                          activity_log: Optional[ActivityLog] = None) -> TriggerProcessor:
        return TriggerProcessor(registry, activity_log)

    def __repr__(self) -> str:
        return f"SqsProfile(queue={self.sqs_queue!r}, region={self.region!r})"
