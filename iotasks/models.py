"""Task records and the request payloads that create or change them."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_time(moment: datetime) -> str:
    """Format a datetime as RFC 3339 with trailing fractional zeros trimmed."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset()
    if not offset:
        return text + "Z"
    minutes = int(offset.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    minutes = abs(minutes)
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


class TaskStatus(str, Enum):
    """Life-cycle state of a task."""

    CREATED = "created"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass(eq=False)
class Task:
    """A unit of work tracked by the repository and run by the processor."""

    id: int
    title: str
    description: str = ""
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    finished_at: datetime = ZERO_TIME
    duration: int = 0
    status: TaskStatus = TaskStatus.CREATED
    error: str = ""
    delete_event: threading.Event = field(default_factory=threading.Event, repr=False)

    def set_duration(self, now: datetime | None = None) -> None:
        """Recompute the duration in whole seconds.

        Finished tasks measure up to their finish time, others up to ``now``.
        """
        if self.status in (TaskStatus.COMPLETED, TaskStatus.FAILED):
            end = self.finished_at
        else:
            end = now if now is not None else utc_now()
        self.duration = int((end - self.created_at).total_seconds())

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready representation of the task."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "created_at": format_time(self.created_at),
            "updated_at": format_time(self.updated_at),
            "finished_at": format_time(self.finished_at),
            "duration": self.duration,
            "status": self.status.value,
            "error": self.error,
        }


class _Pairs(list):
    """Key/value pairs of a decoded JSON object, in document order."""


_REQUEST_FIELDS = ("title", "description")


@dataclass
class TaskRequest:
    """Body of a create or update request."""

    title: str = ""
    description: str = ""

    @classmethod
    def from_json(cls, data: str | bytes | bytearray) -> "TaskRequest":
        """Decode the first JSON value in ``data`` into a request.

        Unknown fields are ignored, field names match case-insensitively,
        ``null`` values leave a field empty. Raises ValueError on bad input.
        """
        if isinstance(data, (bytes, bytearray)):
            data = bytes(data).decode("utf-8")
        text = data.lstrip()
        if not text:
            raise ValueError("EOF")
        decoder = json.JSONDecoder(object_pairs_hook=_Pairs)
        try:
            value, _ = decoder.raw_decode(text)
        except json.JSONDecodeError as exc:
            raise ValueError(str(exc)) from exc

        request = cls()
        if value is None:
            return request
        if not isinstance(value, _Pairs):
            raise ValueError(
                f"cannot unmarshal {type(value).__name__} into a task request"
            )
        for key, item in value:
            name = key if key in _REQUEST_FIELDS else key.lower()
            if name not in _REQUEST_FIELDS or item is None:
                continue
            if not isinstance(item, str):
                raise ValueError(
                    f"cannot unmarshal {type(item).__name__} into field {name} of type string"
                )
            setattr(request, name, item)
        return request