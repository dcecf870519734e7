"""Turn a raw secret value into the data fields of a Kubernetes secret.

A JSON object becomes one field per member. Failing that, a YAML mapping
becomes one field per entry. Anything else, or a mapping with no entries,
becomes a single 'value' field holding the raw string.

Field order follows the source document, so the same input always yields
the same fields in the same order.
"""
import json
import logging
from typing import Any, Dict, Optional

import yaml

from .models import FieldMap

logger = logging.getLogger(__name__)

SCALAR_FIELD = "value"


def _from_json(raw: str) -> Optional[FieldMap]:
    try:
        parsed = json.loads(raw)
    except (ValueError, RecursionError):
        return None

    if not isinstance(parsed, dict):
        return None

    fields: FieldMap = {}
    try:
        for key, value in parsed.items():
            if isinstance(value, str):
                fields[key] = value.encode("utf-8")
            else:
                fields[key] = json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    except (ValueError, RecursionError):
        return None
    return fields


def _yaml_scalar(value: Any) -> Optional[str]:
    # bool before int: bool is an int subclass
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    return None


def _yaml_dump(value: Any) -> str:
    text = yaml.safe_dump(value, default_flow_style=False, sort_keys=False, allow_unicode=True)
    # plain scalars (null, dates) are dumped as a full document ending in '...'
    if text.endswith("\n...\n"):
        text = text[:-len("...\n")]
    if text.endswith("\n"):
        text = text[:-1]
    return text


def _from_yaml(raw: str) -> Optional[FieldMap]:
    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError:
        return None
    except (TypeError, ValueError):
        # impossible dates such as 2024-02-30
        return None
    except RecursionError:
        # deeply nested flow collections
        return None

    if not isinstance(parsed, dict):
        return None

    fields: FieldMap = {}
    try:
        for key, value in parsed.items():
            field_name = _yaml_scalar(key)
            if field_name is None:
                field_name = _yaml_dump(key)
            text = _yaml_scalar(value)
            if text is None:
                text = _yaml_dump(value)
            fields[field_name] = text.encode("utf-8")
    except (yaml.YAMLError, ValueError, RecursionError):
        return None
    return fields


def detect(raw: str) -> FieldMap:
    """
    Build the field map for a secret value. Never raises.

    Args:
        raw: Secret value as fetched from Secret Manager

    Returns:
        Ordered mapping of field name to bytes, never empty
    """
    fields = _from_json(raw)
    source = "json"
    if fields is None:
        fields = _from_yaml(raw)
        source = "yaml"

    if not fields:
        return {SCALAR_FIELD: raw.encode("utf-8")}

    logger.debug(f"Detected structured {source} value with {len(fields)} field(s)")
    return fields


def describe(fields: Dict[str, bytes]) -> str:
    """Short human description of a field map, e.g. "2 fields: user, pass"."""
    if list(fields) == [SCALAR_FIELD]:
        return "scalar"
    names = ", ".join(fields)
    return f"{len(fields)} fields: {names}"
