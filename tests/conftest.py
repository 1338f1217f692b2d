"""Shared test fixtures for the SQS job trigger."""
import json

import pytest

from activity.log import ActivityLog
from jobs.registry import InMemoryJobRegistry, Job
from trigger.processor import TriggerProcessor


@pytest.fixture
def deploy_job() -> Job:
    return Job(display_name="deploy")


@pytest.fixture
def registry(deploy_job) -> InMemoryJobRegistry:
    """Registry with one eligible job and one of each ineligible kind."""
    return InMemoryJobRegistry([
        deploy_job,
        Job(display_name="freestyle", is_parameterized=False),
        Job(display_name="cron-only", triggers=frozenset({"timer"})),
        Job(display_name="frozen", disabled=True),
    ])


@pytest.fixture
def activity_log(tmp_path) -> ActivityLog:
    return ActivityLog(tmp_path / "activity.log", follow_interval_s=0.01)


@pytest.fixture
def processor(registry, activity_log) -> TriggerProcessor:
    return TriggerProcessor(registry, activity_log)


@pytest.fixture
def deploy_payload() -> dict:
    return {
        "job": "deploy",
        "parameters": [
            {"name": "env", "type": "string", "value": "prod"},
            {"name": "force", "type": "boolean", "value": True},
        ],
    }


def envelope(payload: dict, quoted: bool = False, envelope_type: str = "Notification") -> str:
    """Wrap a payload the way an SNS topic delivers it into SQS."""
    message = json.dumps(payload)
    if quoted:
        message = f'"{message}"'
    return json.dumps({
        "Type": envelope_type,
        "MessageId": "6c1a9f2e-0000-4000-8000-000000000000",
        "TopicArn": "arn:aws:sns:us-east-1:123456789012:builds",
        "Message": message,
    })
