"""Tests for SQS profile parsing, client construction and queue lookup."""
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError
from pydantic import SecretStr

from profiles.sqs_profile import SqsProfile
from trigger.processor import TriggerProcessor

QUEUE_URL = "https://sqs.eu-west-1.amazonaws.com/123456789012/build-triggers"


class TestQueueUrlParsing:
    def test_url_specified(self):
        profile = SqsProfile("AKIA", "secret", QUEUE_URL, client=MagicMock())
        assert profile.url_specified
        assert profile.region == "eu-west-1"
        assert profile.queue_name == "build-triggers"
        assert profile.endpoint_url() == "https://sqs.eu-west-1.amazonaws.com"

    def test_bare_name(self):
        profile = SqsProfile("AKIA", "secret", "build-triggers", region="us-west-2",
                             client=MagicMock())
        assert not profile.url_specified
        assert profile.region == "us-west-2"
        assert profile.queue_name == "build-triggers"
        assert profile.endpoint_url() is None

    def test_non_sqs_url_is_a_name(self):
        profile = SqsProfile("AKIA", "secret", "http://localhost:9324/queue/x", client=MagicMock())
        assert not profile.url_specified

    def test_secret_is_masked(self):
        profile = SqsProfile("AKIA", "hunter2", "q", client=MagicMock())
        assert isinstance(profile.secret_access_key, SecretStr)
        assert "hunter2" not in repr(profile)
        assert "hunter2" not in str(profile.secret_access_key)


class TestBuildClient:
    def test_client_built_once_with_endpoint(self):
        with patch("profiles.sqs_profile.boto3.client") as mock_client:
            profile = SqsProfile("AKIA", SecretStr("s3cr3t"), QUEUE_URL)
        mock_client.assert_called_once_with(
            "sqs",
            region_name="eu-west-1",
            aws_access_key_id="AKIA",
            aws_secret_access_key="s3cr3t",
            endpoint_url="https://sqs.eu-west-1.amazonaws.com",
        )
        assert profile.client is mock_client.return_value

    def test_default_credential_chain_without_keys(self):
        with patch("profiles.sqs_profile.boto3.client") as mock_client:
            SqsProfile("", "", "build-triggers")
        mock_client.assert_called_once_with("sqs", region_name="us-east-1")


class TestQueueUrl:
    def test_url_returned_without_calls(self):
        client = MagicMock()
        profile = SqsProfile("AKIA", "s", QUEUE_URL, client=client)
        assert profile.queue_url() == QUEUE_URL
        client.list_queues.assert_not_called()

    def test_existing_queue_found(self):
        client = MagicMock()
        client.list_queues.return_value = {"QueueUrls": [
            "https://sqs.us-east-1.amazonaws.com/1/build-triggers-dlq",
            "https://sqs.us-east-1.amazonaws.com/1/build-triggers",
        ]}
        profile = SqsProfile("AKIA", "s", "build-triggers", client=client)
        assert profile.queue_url() == "https://sqs.us-east-1.amazonaws.com/1/build-triggers"
        client.create_queue.assert_not_called()

    def test_missing_queue_created(self):
        client = MagicMock()
        client.list_queues.return_value = {}
        client.create_queue.return_value = {"QueueUrl": "https://sqs.us-east-1.amazonaws.com/1/new"}
        profile = SqsProfile("AKIA", "s", "new", client=client)
        assert profile.queue_url() == "https://sqs.us-east-1.amazonaws.com/1/new"
        client.create_queue.assert_called_once_with(QueueName="new")

    def test_lookup_cached(self):
        client = MagicMock()
        client.list_queues.return_value = {"QueueUrls": ["https://x/1/q"]}
        profile = SqsProfile("AKIA", "s", "q", client=client)
        profile.queue_url()
        profile.queue_url()
        client.list_queues.assert_called_once()


class TestValidate:
    def test_ok(self):
        profile = SqsProfile("AKIA", "s", QUEUE_URL, client=MagicMock())
        assert profile.validate() == (True, f"Verified SQS Queue {QUEUE_URL}")

    def test_failure(self):
        client = MagicMock()
        client.list_queues.side_effect = ClientError(
            {"Error": {"Code": "InvalidClientTokenId", "Message": "bad token"}}, "ListQueues"
        )
        profile = SqsProfile("AKIA", "s", "q", client=client)
        assert profile.validate() == (False, "Failed to validate the account")


def test_trigger_processor(registry, activity_log):
    profile = SqsProfile("AKIA", "s", QUEUE_URL, client=MagicMock())
    processor = profile.trigger_processor(registry, activity_log)
    assert isinstance(processor, TriggerProcessor)
    assert processor.registry is registry
