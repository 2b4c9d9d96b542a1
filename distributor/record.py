"""Record data model: one unit of work handed to an agent."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping

from .errors import InvalidRecord, InvalidStatusValue

PHONE_RE = re.compile(r"^\+?\d{10,15}$")
MAX_NOTES_LENGTH = 500


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_record_id() -> str:
    return uuid.uuid4().hex


class RecordStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def parse(cls, value: Any) -> "RecordStatus":
        """Return the member for *value* or raise InvalidStatusValue."""

        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidStatusValue(value) from None

    @property
    def is_live(self) -> bool:
        """Pending and in-progress records count towards an agent's live load."""
        return self in (RecordStatus.PENDING, RecordStatus.IN_PROGRESS)


def completed_delta(old: RecordStatus, new: RecordStatus) -> int:
    """Signed change to an agent's completed counter for ``old -> new``."""

    if old is not RecordStatus.COMPLETED and new is RecordStatus.COMPLETED:
        return 1
    if old is RecordStatus.COMPLETED and new is not RecordStatus.COMPLETED:
        return -1
    return 0


def validate_phone(phone: Any) -> str:
    value = "" if phone is None else str(phone).strip()
    if not PHONE_RE.match(value):
        raise InvalidRecord(f"Invalid phone number: {phone!r}")
    return value


def validate_notes(notes: Any) -> str:
    value = "" if notes is None else str(notes).strip()
    if len(value) > MAX_NOTES_LENGTH:
        raise InvalidRecord(f"Notes cannot exceed {MAX_NOTES_LENGTH} characters")
    return value


@dataclass(frozen=True)
class RecordInput:
    """A normalized row as produced by the upstream record normalizer."""

    first_name: str
    phone: str
    notes: str = ""

    def __post_init__(self):
        first_name = (self.first_name or "").strip()
        if not first_name:
            raise InvalidRecord("First name is required")
        object.__setattr__(self, "first_name", first_name)
        object.__setattr__(self, "phone", validate_phone(self.phone))
        object.__setattr__(self, "notes", validate_notes(self.notes))

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "RecordInput":
        """Accept both the wire shape (firstName) and snake_case keys."""

        first_name = row.get("firstName", row.get("first_name"))
        return cls(
            first_name="" if first_name is None else str(first_name),
            phone=row.get("phone"),
            notes=row.get("notes") or "",
        )

    @property
    def complexity(self) -> int:
        # Longer notes are treated as more involved work.
        return len(self.notes)


@dataclass
class Record:
    """A record as tracked inside a distribution."""

    first_name: str
    phone: str
    notes: str = ""
    status: RecordStatus = RecordStatus.PENDING
    assigned_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    updated_at: datetime | None = None
    redistributed: bool = False
    # id of the pending copy made when this record was handed to another agent
    redistributed_to: str | None = None
    id: str = field(default_factory=new_record_id)

    @classmethod
    def assign(cls, source: RecordInput | Mapping[str, Any], *, assigned_at: datetime | None = None) -> "Record":
        """Create a fresh pending record from a normalized input row."""

        if not isinstance(source, RecordInput):
            source = RecordInput.from_mapping(source)
        return cls(
            first_name=source.first_name,
            phone=source.phone,
            notes=source.notes,
            assigned_at=assigned_at or utcnow(),
        )

    @property
    def complexity(self) -> int:
        return len(self.notes or "")

    @property
    def is_completed(self) -> bool:
        return self.status is RecordStatus.COMPLETED

    def transition(self, new_status: RecordStatus, notes: str | None = None, *, now: datetime | None = None) -> int:
        """Move to *new_status* in place and return the completed-counter delta.

        The delta is +1 when entering ``completed``, -1 when leaving it and 0
        otherwise.  ``completed_at`` follows the same boundary.
        """

        now = now or utcnow()
        delta = completed_delta(self.status, new_status)
        if notes is not None:
            self.notes = validate_notes(notes)
        self.status = new_status
        self.updated_at = now

        if new_status is RecordStatus.COMPLETED:
            if delta:
                self.completed_at = now
        else:
            self.completed_at = None
        return delta

    def reassigned_copy(self, *, assigned_at: datetime | None = None) -> "Record":
        """Return a new pending record carrying this record's contact data."""

        return Record(
            first_name=self.first_name,
            phone=self.phone,
            notes=self.notes,
            assigned_at=assigned_at or utcnow(),
            redistributed=True,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "firstName": self.first_name,
            "phone": self.phone,
            "notes": self.notes,
            "status": self.status.value,
            "assignedAt": self.assigned_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "redistributed": self.redistributed,
            "redistributedTo": self.redistributed_to,
        }
