"""
Parameter Extractor — converts the payload's ``parameters`` array into
typed parameter values.

Each entry must look like ``{"name": ..., "type": "string"|"boolean", "value": ...}``.
Bad entries are logged and skipped one at a time; extraction never fails
the payload as a whole.
"""
from __future__ import annotations

import json
from typing import Any

import structlog

from models.schemas import BoolParam, ParameterValue, StringParam

logger = structlog.get_logger()

REQUIRED_FIELDS = ("name", "value", "type")
SUPPORTED_TYPES = ("string", "boolean")


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() == "true"
    return False


def coerce_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return json.dumps(value)


def _is_valid(index: int, param: Any) -> bool:
    if not isinstance(param, dict) or not all(f in param for f in REQUIRED_FIELDS):
        logger.warning("parameter_missing_fields",
                       index=index,
                       detail="Parameters must contain key/value pairs for "
                              "'name', 'value', and 'type'.")
        return False
    if param["type"] not in SUPPORTED_TYPES:
        logger.warning("parameter_type_unsupported",
                       index=index,
                       name=param.get("name"),
                       type=param.get("type"),
                       detail="'string' and 'boolean' are the only supported "
                              "parameter types.")
        return False
    return True


def extract_parameters(payload: dict[str, Any]) -> list[ParameterValue]:
    """Return the well-formed parameters of ``payload`` in input order."""
    if "parameters" not in payload:
        return []

    raw_params = payload["parameters"]
    if not isinstance(raw_params, list):
        logger.warning("parameters_not_array",
                       got=type(raw_params).__name__,
                       detail="Parameters must be passed as a JSON array.")
        return []

    params: list[ParameterValue] = []
    for i, param in enumerate(raw_params):
        if not _is_valid(i, param):
            continue
        name = coerce_str(param["name"])
        if param["type"] == "boolean":
            params.append(BoolParam(name=name, value=coerce_bool(param["value"])))
        else:
            params.append(StringParam(name=name, value=coerce_str(param["value"])))

    return params
