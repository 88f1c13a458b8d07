"""Interpretation of the query parameters accepted when listing tasks."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Union

logger = logging.getLogger(__name__)

ORDERED = "ordered"
CREATED = "created"
RUNNING = "running"
COMPLETED = "completed"
FAILED = "failed"

STATUS_PARAMS = (CREATED, RUNNING, COMPLETED, FAILED)

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})

Query = Mapping[str, Union[str, Sequence[str]]]


def parse_bool(value: str) -> bool:
    """Parse a boolean in the spellings a query may use; raise ValueError otherwise."""
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"invalid boolean: {value!r}")


def _first(query: Query, name: str) -> str:
    value = query.get(name)
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return value[0] if value else ""


def is_ordered(query: Query) -> bool:
    """Tell whether the listing was asked for in creation order."""
    raw = _first(query, ORDERED)
    if not raw:
        return False
    try:
        return parse_bool(raw)
    except ValueError:
        logger.warning('wrong "%s" parameter value: %s', ORDERED, raw)
        return False


def valid_query_params(query: Query) -> dict[str, bool]:
    """Return the status filters given in ``query`` that parse as booleans."""
    result: dict[str, bool] = {}
    for name in STATUS_PARAMS:
        raw = _first(query, name)
        if not raw:
            continue
        try:
            result[name] = parse_bool(raw)
        except ValueError:
            logger.warning('wrong "%s" parameter value: %s', name, raw)
    return result