"""Pruning, schema projection and flattening of untyped page JSON.

The embedded page payload is plain JSON (dict / list / str / int / float /
bool / None). These helpers shrink it to the handful of fields an LLM client
actually needs.
"""
from __future__ import annotations

import copy
from typing import Any, Mapping, Union

from .errors import ExtractionError

AllowSchema = Mapping[str, Union[bool, "AllowSchema"]]


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def prune(value: Any) -> Any:
    """Strip null / empty-string values and collapse ``{"value": X}`` wrappers.

    Containers are modified in place. The return value must be used by the
    caller, because a top-level ``{"value": X}`` collapses to ``X``.
    """
    if isinstance(value, dict):
        for key in list(value):
            child = value[key]
            if _is_empty(child):
                del value[key]
                continue
            value[key] = prune(child)
        if len(value) == 1 and "value" in value:
            return value["value"]
        return value
    if isinstance(value, list):
        value[:] = [prune(item) for item in value if not _is_empty(item)]
        return value
    return value


def pick_by_schema(value: Any, schema: AllowSchema | bool) -> Any:
    """Return a new value containing only the fields allowed by ``schema``."""
    if schema is True:
        return copy.deepcopy(value)
    if isinstance(value, list):
        return [pick_by_schema(item, schema) for item in value]
    if not isinstance(value, dict):
        return value

    result: dict[str, Any] = {}
    for key, rule in schema.items():
        if key not in value or rule is False:
            continue
        if rule is True:
            result[key] = copy.deepcopy(value[key])
        else:
            result[key] = pick_by_schema(value[key], rule)
    return result


def flatten_arrays(value: Any) -> Any:
    """Replace every object property holding a one-element list with that element."""
    if isinstance(value, list):
        return [flatten_arrays(item) for item in value]
    if not isinstance(value, dict):
        return value

    result: dict[str, Any] = {}
    for key, child in value.items():
        child = flatten_arrays(child)
        if isinstance(child, list) and len(child) == 1:
            child = child[0]
        result[key] = child
    return result


def dig(value: Any, *path: str | int) -> Any:
    """Walk ``path`` into ``value``, raising ExtractionError on the first miss."""
    current = value
    walked: list[str] = []
    for step in path:
        where = ".".join(walked) or "<root>"
        if isinstance(step, int):
            if not isinstance(current, list):
                raise ExtractionError(f"Expected a list at {where}, got {type(current).__name__}")
            if not -len(current) <= step < len(current):
                raise ExtractionError(f"Index {step} out of range at {where}")
        else:
            if not isinstance(current, dict):
                raise ExtractionError(f"Expected an object at {where}, got {type(current).__name__}")
            if step not in current:
                raise ExtractionError(f"Missing field '{step}' at {where}")
        current = current[step]
        walked.append(str(step))
    return current
