"""
Safe Claim Protocol — Task record schema, JSON codec and result type.

A task record is one JSON object per file, named ``<id>.json`` inside a team
directory. Only the fields needed to decide claimability are interpreted;
everything else is carried through untouched.

Assumptions and edge cases:
- decode() requires ``id``, ``subject`` and ``status``. Every other field
  defaults (empty strings, empty lists, ``None``).
- ``owner`` may be absent, ``null`` or ``""``; all three mean unclaimed. The
  distinction between ``""`` and ``null`` is preserved on write.
- ``metadata`` is an opaque JSON value. Unknown top-level keys are kept in
  ``extra`` and written back after the known keys in their original order.
- save() writes atomically by writing to a temporary file in the same
  directory and publishing it with os.replace, so lockless readers see
  either the old or the new complete file, never a partial write.
"""

from __future__ import annotations

import json
import os
import stat
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .errors import ParseError


class TaskStatus(str, Enum):
    """Well-known status values. Anything else is treated as claimable."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DELETED = "deleted"


# Canonical key order on disk: JSON key -> attribute name
_FIELDS: dict[str, str] = {
    "id": "id",
    "subject": "subject",
    "description": "description",
    "activeForm": "active_form",
    "status": "status",
    "owner": "owner",
    "blocks": "blocks",
    "blockedBy": "blocked_by",
    "metadata": "metadata",
}

_REQUIRED = ("id", "subject", "status")


@dataclass
class TaskRecord:
    """
    A single task as persisted in a team directory.

    Attributes:
        id:           Stable identifier; the task file is named after it.
        subject:      Short label shown in success messages.
        description:  Free text.
        active_form:  Progress label (``activeForm`` on disk).
        status:       Lifecycle state; kept as a plain string.
        owner:        Agent holding the task, or None/"" when unclaimed.
        blocks:       Ids of tasks this task blocks.
        blocked_by:   Ids of tasks blocking this one (``blockedBy`` on disk).
        metadata:     Opaque JSON payload, never interpreted.
        extra:        Unknown top-level keys, preserved in order.
    """
    id: str
    subject: str
    status: str = TaskStatus.PENDING.value
    description: str = ""
    active_form: str = ""
    owner: Optional[str] = None
    blocks: list[str] = field(default_factory=list)
    blocked_by: list[str] = field(default_factory=list)
    metadata: Any = None
    extra: dict[str, Any] = field(default_factory=dict)

    # ── Serialization ────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-friendly dict in canonical key order."""
        data: dict[str, Any] = {}
        for key, attr in _FIELDS.items():
            value = getattr(self, attr)
            data[key] = value.value if isinstance(value, TaskStatus) else value
        for key, value in self.extra.items():
            data[key] = value
        return data

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False) + "\n"

    @classmethod
    def from_dict(cls, data: Any) -> TaskRecord:
        """Build a record from a decoded JSON value, validating field types."""
        if not isinstance(data, dict):
            raise ParseError(f"expected a JSON object, got {type(data).__name__}")

        missing = [key for key in _REQUIRED if key not in data]
        if missing:
            raise ParseError(f"missing required field(s): {', '.join(missing)}")

        for key in ("id", "subject", "status"):
            _expect_str(data, key)
        for key in ("description", "activeForm"):
            if key in data:
                _expect_str(data, key)
        if data.get("owner") is not None:
            _expect_str(data, "owner")
        for key in ("blocks", "blockedBy"):
            if key in data:
                _expect_str_list(data, key)

        return cls(
            id=data["id"],
            subject=data["subject"],
            status=data["status"],
            description=data.get("description", ""),
            active_form=data.get("activeForm", ""),
            owner=data.get("owner"),
            blocks=list(data.get("blocks", [])),
            blocked_by=list(data.get("blockedBy", [])),
            metadata=data.get("metadata"),
            extra={k: v for k, v in data.items() if k not in _FIELDS},
        )

    @classmethod
    def from_file(cls, path: Path | str) -> TaskRecord:
        """Load a task record from a JSON file."""
        return decode(Path(path).read_bytes())

    def save(self, path: Path | str) -> None:
        """Save the record atomically.

        Writes to a temporary file next to the target, fsyncs if possible,
        then replaces the target with os.replace. An existing target keeps its
        permission bits. The parent directory must already exist.
        """
        path = Path(path)
        payload = encode(self)
        tmp = None
        try:
            with tempfile.NamedTemporaryFile(delete=False, dir=path.parent, prefix=".task_", suffix=".tmp", mode="wb") as tf:
                tmp = Path(tf.name)
                tf.write(payload)
                tf.flush()
                try:
                    os.fsync(tf.fileno())
                except OSError:
                    # fsync may not be available on some filesystems
                    pass
            if path.exists():
                # NamedTemporaryFile creates 0600; keep the target's mode
                os.chmod(tmp, stat.S_IMODE(path.stat().st_mode))
            os.replace(str(tmp), str(path))
        finally:
            if tmp is not None and tmp.exists():
                tmp.unlink()

    # ── Claim helpers ────────────────────────────────────────────────

    @property
    def is_claimed(self) -> bool:
        return bool(self.owner)

    def mark_claimed(self, owner: str) -> None:
        self.owner = owner
        self.status = TaskStatus.IN_PROGRESS.value

    def __str__(self) -> str:
        owner = f" @{self.owner}" if self.owner else ""
        return f"[{self.id}] {self.status}{owner}: {self.subject}"


def _expect_str(data: dict, key: str) -> None:
    if not isinstance(data[key], str):
        raise ParseError(f"field '{key}' must be a string, got {type(data[key]).__name__}")


def _expect_str_list(data: dict, key: str) -> None:
    value = data[key]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ParseError(f"field '{key}' must be a list of strings")


def decode(raw: bytes | str) -> TaskRecord:
    """Parse the persisted form of a task record.

    Raises ParseError on invalid UTF-8, invalid JSON, a non-object document,
    a missing required field or a field of the wrong type.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ParseError(f"not valid UTF-8: {e}") from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON: {e}") from e
    return TaskRecord.from_dict(data)


def encode(record: TaskRecord) -> bytes:
    """Serialize a record to canonical pretty-printed UTF-8 JSON."""
    return record.to_json().encode("utf-8")


@dataclass
class ClaimResult:
    """Discriminated outcome of a claim attempt.

    ``kind`` is ``"claimed"`` on success, otherwise the ``kind`` tag of the
    ClaimError that stopped the claim.
    """
    ok: bool
    kind: str
    message: str
    task: Optional[TaskRecord] = None
    denied: bool = False

    def __str__(self) -> str:
        return self.message if self.ok else f"Error: {self.message}"
