"""Cellular data plan snapshots and remaining-usage arithmetic."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

MIB = 1024 * 1024


class DataPlanType(Enum):
    """Billing kind of a cellular data plan."""

    UNLIMITED = "unlimited"
    METERED_PAID = "metered_paid"
    METERED_BASE = "metered_base"


class DataLeft(Enum):
    """Coarse classification of how much of a plan remains."""

    UNKNOWN = "unknown"
    NORMAL = "normal"
    LOW = "low"
    VERY_LOW = "very_low"
    NONE = "none"


@dataclass(frozen=True)
class DataPlanThresholds:
    """Warning thresholds for remaining data and time.

    Attributes:
        low_bytes: Remaining bytes at or below which data is "low".
        very_low_bytes: Remaining bytes at or below which data is "very low".
        low_secs: Remaining seconds at or below which an unlimited plan is "low".
        very_low_secs: Remaining seconds at or below which it is "very low".
    """

    low_bytes: int = 100 * MIB
    very_low_bytes: int = 50 * MIB
    low_secs: int = 60 * 60
    very_low_secs: int = 30 * 60

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DataPlanThresholds":
        """Create from a mapping; missing keys keep their defaults."""
        defaults = cls()
        return cls(
            low_bytes=int(data.get("low_bytes", defaults.low_bytes)),
            very_low_bytes=int(data.get("very_low_bytes", defaults.very_low_bytes)),
            low_secs=int(data.get("low_secs", defaults.low_secs)),
            very_low_secs=int(data.get("very_low_secs", defaults.very_low_secs)),
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CellularDataPlan:
    """Immutable snapshot of one carrier data plan.

    Attributes:
        name: Plan display name.
        plan_type: Billing kind.
        update_time: When the carrier last reported usage.
        start: Plan start.
        end: Plan end.
        data_bytes: Byte quota (ignored for unlimited plans).
        bytes_used: Bytes consumed so far.
    """

    name: str
    plan_type: DataPlanType
    update_time: datetime
    start: datetime
    end: datetime
    data_bytes: int = 0
    bytes_used: int = 0

    def __post_init__(self) -> None:
        # Naive timestamps are taken as UTC
        for name in ("update_time", "start", "end"):
            object.__setattr__(self, name, _to_datetime(getattr(self, name)))

    def remaining_time(self, now: Optional[datetime] = None) -> float:
        """Seconds left before the plan ends, never negative."""
        now = _to_datetime(now) if now is not None else _utcnow()
        return max(0.0, (self.end - now).total_seconds())

    def remaining_minutes(self, now: Optional[datetime] = None) -> int:
        return int(self.remaining_time(now) // 60)

    def remaining_data(self) -> int:
        """Bytes left in the quota, never negative."""
        return max(0, self.data_bytes - self.bytes_used)

    def unique_identifier(self) -> str:
        """Identity used to deduplicate repeated reports of the same plan."""
        return "|".join(
            [
                self.name,
                self.plan_type.value,
                str(int(self.start.timestamp())),
                str(int(self.end.timestamp())),
                str(self.data_bytes),
            ]
        )

    def data_left(
        self,
        thresholds: Optional[DataPlanThresholds] = None,
        now: Optional[datetime] = None,
    ) -> DataLeft:
        """Classify what remains of the plan against ``thresholds``.

        Unlimited plans are judged by remaining time, metered plans by
        remaining bytes.
        """
        thresholds = thresholds or DataPlanThresholds()
        if self.plan_type is DataPlanType.UNLIMITED:
            remaining = self.remaining_time(now)
            if remaining <= 0:
                return DataLeft.NONE
            if remaining <= thresholds.very_low_secs:
                return DataLeft.VERY_LOW
            if remaining <= thresholds.low_secs:
                return DataLeft.LOW
            return DataLeft.NORMAL

        if self.data_bytes <= 0:
            return DataLeft.UNKNOWN
        remaining = self.remaining_data()
        if remaining <= 0:
            return DataLeft.NONE
        if remaining <= thresholds.very_low_bytes:
            return DataLeft.VERY_LOW
        if remaining <= thresholds.low_bytes:
            return DataLeft.LOW
        return DataLeft.NORMAL

    def needs_warning(
        self,
        thresholds: Optional[DataPlanThresholds] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """True when the plan is nearly exhausted."""
        thresholds = thresholds or DataPlanThresholds()
        if self.plan_type is DataPlanType.UNLIMITED:
            return self.remaining_time(now) <= thresholds.very_low_secs
        return self.remaining_data() <= thresholds.very_low_bytes

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CellularDataPlan":
        """Create from a raw plan dictionary.

        Timestamps may be ``datetime`` objects, ISO 8601 strings or POSIX
        seconds.

        Raises:
            ValueError: If a field is missing or malformed.
        """
        try:
            return cls(
                name=str(data["name"]),
                plan_type=DataPlanType(data["plan_type"]),
                update_time=_to_datetime(data.get("update_time", data["start"])),
                start=_to_datetime(data["start"]),
                end=_to_datetime(data["end"]),
                data_bytes=int(data.get("data_bytes", 0)),
                bytes_used=int(data.get("bytes_used", 0)),
            )
        except KeyError as e:
            raise ValueError(f"Missing data plan field: {e.args[0]}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "plan_type": self.plan_type.value,
            "update_time": self.update_time.isoformat(),
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "data_bytes": self.data_bytes,
            "bytes_used": self.bytes_used,
            "remaining_data": self.remaining_data(),
            "remaining_minutes": self.remaining_minutes(),
        }


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValueError(f"Invalid timestamp: {value!r}")


def deduplicate_plans(plans: Iterable[CellularDataPlan]) -> list[CellularDataPlan]:
    """Drop repeated plans, keeping the first occurrence of each identity."""
    seen: set[str] = set()
    unique: list[CellularDataPlan] = []
    for plan in plans:
        key = plan.unique_identifier()
        if key in seen:
            logger.debug("Dropping duplicate data plan %s", key)
            continue
        seen.add(key)
        unique.append(plan)
    return unique


def significant_data_plan(plans: Sequence[CellularDataPlan]) -> Optional[CellularDataPlan]:
    """Plan whose usage should be shown to the user.

    The first paid or unlimited plan wins; a base plan is only used when it
    is all there is.
    """
    if not plans:
        return None
    for plan in plans:
        if plan.plan_type is not DataPlanType.METERED_BASE:
            return plan
    return plans[0]
