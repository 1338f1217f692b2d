"""
Payload Normalizer — turns a raw queue message body into the canonical
payload dict.

Two wire forms are accepted:

  bare:       {"job": "deploy", "parameters": [...]}
  enveloped:  {"Type": "Notification", "Message": "<bare form as a JSON string>"}

The enveloped form is what an SNS topic delivers into an SQS queue. Some
publishers double-encode the inner message, so a ``Message`` that is itself
wrapped in one extra pair of double quotes has that pair stripped before
it is parsed.
"""
from __future__ import annotations

import json
from typing import Any, Union

import structlog

from trigger.errors import MalformedPayloadError

logger = structlog.get_logger()

ENVELOPE_TYPE_KEY = "Type"
ENVELOPE_MESSAGE_KEY = "Message"


def _parse_object(text: Union[str, bytes], what: str) -> dict[str, Any]:
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedPayloadError(f"{what} is not valid JSON: {e}") from e
    except RecursionError as e:
        raise MalformedPayloadError(f"{what} is nested too deeply") from e
    if not isinstance(parsed, dict):
        raise MalformedPayloadError(
            f"{what} must be a JSON object, got {type(parsed).__name__}"
        )
    return parsed


def strip_outer_quotes(message: str) -> str:
    """Remove exactly one leading and one trailing double quote, if both present."""
    if len(message) >= 2 and message[0] == '"' and message[-1] == '"':
        return message[1:-1]
    return message


def normalize(raw: Union[str, bytes]) -> dict[str, Any]:
    """Return the canonical payload for ``raw``, unwrapping one envelope level."""
    parsed = _parse_object(raw, "payload")

    if ENVELOPE_TYPE_KEY not in parsed:
        return parsed

    message = parsed.get(ENVELOPE_MESSAGE_KEY)
    if not isinstance(message, str) or not message:
        raise MalformedPayloadError(
            f"envelope of type {parsed.get(ENVELOPE_TYPE_KEY)!r} has no message"
        )

    logger.debug("payload_envelope_unwrapped",
                 envelope_type=parsed.get(ENVELOPE_TYPE_KEY))
    return _parse_object(strip_outer_quotes(message), "envelope message")
