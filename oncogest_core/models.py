# =============================================================================
# oncogest_core/models.py
# Record types for preparations, medications and purchase entries
# =============================================================================
"""
Dataclass models mirroring the three Supabase tables.

Records travel to the service and to the local snapshot as flat dicts with
snake_case keys and ISO-8601 strings. Timestamps are normalized to naive
local time when parsed so that day bucketing follows the local calendar.
"""

from __future__ import annotations
from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Tuple, Type, Union

import pandas as pd

from oncogest_core.errors import RecordValidationError


class RecordKind(Enum):
    """Collections handled by the gateway, valued by their table name."""
    PREPARATIONS = "leftover_preparations"
    MEDICATIONS = "medications"
    PURCHASES = "purchase_entries"

    @property
    def table(self) -> str:
        return self.value

    @property
    def snapshot_key(self) -> str:
        return f"oncogest_{self.value}"


class PreparationStatus(Enum):
    PENDING = "pending"
    USED = "used"
    RESOLVED = "resolved"
    EXPIRED = "expired"


# =============================================================================
# PARSING HELPERS
# =============================================================================

def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """Parse a calendar date; datetimes are truncated to their date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.Timestamp(str(value)).date()


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse a timestamp into naive local time."""
    if value is None or value == "":
        return None
    ts = value if isinstance(value, datetime) else pd.Timestamp(str(value)).to_pydatetime()
    if ts.tzinfo is not None:
        ts = ts.astimezone().replace(tzinfo=None)
    return ts


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def serialize_value(value: Any) -> Any:
    """Convert python values into their wire representation."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def serialize_fields(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: serialize_value(v) for k, v in values.items()}


# =============================================================================
# BASE RECORD
# =============================================================================

class _Record:
    """Shared behaviour for the three record dataclasses."""

    KIND: ClassVar[RecordKind]
    REQUIRED: ClassVar[Tuple[str, ...]] = ()
    DATE_FIELDS: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    def from_record(cls, record: Dict[str, Any]):
        """Build a model from a wire dict, ignoring unknown columns."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in record.items() if k in known}
        for name in cls.DATE_FIELDS:
            if name in values:
                values[name] = parse_date(values[name])
        if "created_at" in values:
            values["created_at"] = parse_timestamp(values["created_at"])
        if values.get("id") is not None:
            values["id"] = str(values["id"])
        return cls(**values)

    def to_record(self, include_meta: bool = True) -> Dict[str, Any]:
        """Serialize to a wire dict; without meta, id/created_at are omitted."""
        record = {f.name: serialize_value(getattr(self, f.name)) for f in fields(self)}
        if not include_meta:
            record.pop("id", None)
            record.pop("created_at", None)
        return record

    def missing_fields(self) -> List[str]:
        return [name for name in self.REQUIRED if _is_blank(getattr(self, name))]

    def validate(self) -> None:
        """Raise RecordValidationError when required fields are empty."""
        missing = self.missing_fields()
        if missing:
            raise RecordValidationError(
                f"Missing required fields: {', '.join(missing)}",
                collection=self.KIND.table,
                fields=missing,
            )

    @classmethod
    def validate_updates(cls, updates: Dict[str, Any]) -> None:
        """Reject partial updates that touch unknown or generated columns."""
        editable = {f.name for f in fields(cls)} - {"id", "created_at"}
        unknown = sorted(set(updates) - editable)
        if unknown:
            raise RecordValidationError(
                f"Unknown or read-only fields: {', '.join(unknown)}",
                collection=cls.KIND.table,
                fields=unknown,
            )
        blank = [name for name in cls.REQUIRED if name in updates and _is_blank(updates[name])]
        if blank:
            raise RecordValidationError(
                f"Required fields cannot be emptied: {', '.join(blank)}",
                collection=cls.KIND.table,
                fields=blank,
            )

    def merged(self, updates: Dict[str, Any]):
        """Return a copy with the wire-format updates applied."""
        record = self.to_record()
        record.update(serialize_fields(updates))
        return type(self).from_record(record)


# =============================================================================
# MODELS
# =============================================================================

@dataclass
class LeftoverPreparation(_Record):
    """A compounded mixture left over after administration."""

    KIND: ClassVar[RecordKind] = RecordKind.PREPARATIONS
    REQUIRED: ClassVar[Tuple[str, ...]] = ("preparation_name", "dose", "expiry_date")
    DATE_FIELDS: ClassVar[Tuple[str, ...]] = ("expiry_date",)

    preparation_name: str = ""
    dose: str = ""
    expiry_date: Optional[date] = None
    used: bool = False
    resolved: bool = False
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        """Shown in the worklist until used or resolved."""
        return not self.used and not self.resolved

    @property
    def drug_family(self) -> str:
        """Leading token of the preparation name."""
        parts = self.preparation_name.split()
        return parts[0] if parts else ""

    def is_expired(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self.expiry_date is not None and self.expiry_date < today

    def days_until_expiry(self, today: Optional[date] = None) -> Optional[int]:
        if self.expiry_date is None:
            return None
        return (self.expiry_date - (today or date.today())).days

    def expiry_label(self, today: Optional[date] = None) -> str:
        """Expiry date with the days left, for list rows."""
        days = self.days_until_expiry(today)
        if days is None:
            return "no expiry date"
        suffix = "expired" if days < 0 else f"{days} d"
        return f"{self.expiry_date.isoformat()} ({suffix})"

    def status(self, today: Optional[date] = None) -> PreparationStatus:
        if self.resolved:
            return PreparationStatus.RESOLVED
        if self.used:
            return PreparationStatus.USED
        if self.is_expired(today):
            return PreparationStatus.EXPIRED
        return PreparationStatus.PENDING


@dataclass
class Medication(_Record):
    """Catalog entry; the name is not unique-checked client side."""

    KIND: ClassVar[RecordKind] = RecordKind.MEDICATIONS
    REQUIRED: ClassVar[Tuple[str, ...]] = ("name",)

    name: str = ""
    id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class PurchaseEntry(_Record):
    """Stock check / order line for a medication."""

    KIND: ClassVar[RecordKind] = RecordKind.PURCHASES
    REQUIRED: ClassVar[Tuple[str, ...]] = ("medication_name",)
    DATE_FIELDS: ClassVar[Tuple[str, ...]] = ("order_date",)

    medication_name: str = ""
    medication_id: Optional[str] = None
    current_stock: int = 0
    ordered: bool = False
    order_date: Optional[date] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def for_medication(cls, medication: Medication, current_stock: int = 0) -> PurchaseEntry:
        """Start an entry that copies the medication's current name."""
        return cls(
            medication_name=medication.name,
            medication_id=medication.id,
            current_stock=current_stock,
        )

    def validate(self) -> None:
        super().validate()
        self._check_stock(self.current_stock)

    @classmethod
    def validate_updates(cls, updates: Dict[str, Any]) -> None:
        super().validate_updates(updates)
        if "current_stock" in updates:
            cls._check_stock(updates["current_stock"])

    @classmethod
    def _check_stock(cls, value: Any) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise RecordValidationError(
                "Current stock must be a non-negative integer",
                collection=cls.KIND.table,
                fields=["current_stock"],
            )


Record = Union[LeftoverPreparation, Medication, PurchaseEntry]

MODEL_BY_KIND: Dict[RecordKind, Type[_Record]] = {
    RecordKind.PREPARATIONS: LeftoverPreparation,
    RecordKind.MEDICATIONS: Medication,
    RecordKind.PURCHASES: PurchaseEntry,
}


def active_worklist(preparations: Iterable[LeftoverPreparation]) -> List[LeftoverPreparation]:
    """Preparations still awaiting action: neither used nor resolved."""
    return [p for p in preparations if p.is_active]


def with_defaults(entity: Record, today: Optional[date] = None) -> Record:
    """Fill creation-time defaults the store does not generate."""
    if isinstance(entity, PurchaseEntry) and entity.order_date is None:
        return replace(entity, order_date=today or date.today())
    return entity
