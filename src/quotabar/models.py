from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping


class TokenStatus(str, Enum):
    """
    TokenStatus is the payload of the token-status event. The presentation
    layer derives healthy / stale / never-fetched from this stream.
    """

    OK = "ok"
    ERROR = "error"
    EXPIRED = "expired"
    FETCH_ERROR = "fetch_error"


@dataclass(frozen=True, slots=True)
class Credential:
    access_token: "str"
    # unix timestamp in milliseconds
    expires_at: "int"


@dataclass(frozen=True, slots=True)
class UsageMeter:
    """
    UsageMeter is one quota window as reported by the primary source.
    """

    # percent-like ratio, may exceed 100
    utilization: "float"
    resets_at: "str | None" = None

    @classmethod
    def from_dict(cls, data: "Mapping[str, Any]") -> "UsageMeter":
        return cls(
            utilization=float(data["utilization"]),
            resets_at=data.get("resets_at"),
        )

    def to_dict(self) -> "dict[str, Any]":
        return {"utilization": self.utilization, "resets_at": self.resets_at}


@dataclass(frozen=True, slots=True)
class ExtraUsage:
    is_enabled: "bool"
    monthly_limit: "float"
    used_credits: "float"
    utilization: "float"

    @classmethod
    def from_dict(cls, data: "Mapping[str, Any]") -> "ExtraUsage":
        return cls(
            is_enabled=bool(data.get("is_enabled", False)),
            monthly_limit=float(data.get("monthly_limit") or 0.0),
            used_credits=float(data.get("used_credits") or 0.0),
            utilization=float(data.get("utilization") or 0.0),
        )

    def to_dict(self) -> "dict[str, Any]":
        return {
            "is_enabled": self.is_enabled,
            "monthly_limit": self.monthly_limit,
            "used_credits": self.used_credits,
            "utilization": self.utilization,
        }


# optional meters of the primary snapshot, in wire order
OPTIONAL_METERS: "tuple[str, ...]" = (
    "seven_day_oauth_apps",
    "seven_day_opus",
    "seven_day_sonnet",
    "seven_day_cowork",
)


def _optional_meter(data: "Mapping[str, Any]", key: "str") -> "UsageMeter | None":
    value = data.get(key)
    if value is None:
        return None
    return UsageMeter.from_dict(value)


@dataclass(frozen=True, slots=True)
class UsageSnapshot:
    """
    UsageSnapshot is the decoded response of the primary usage endpoint.
    five_hour and seven_day are mandatory, every other field decodes to
    None when absent so newer or older API versions keep working.
    """

    five_hour: "UsageMeter"
    seven_day: "UsageMeter"
    seven_day_oauth_apps: "UsageMeter | None" = None
    seven_day_opus: "UsageMeter | None" = None
    seven_day_sonnet: "UsageMeter | None" = None
    seven_day_cowork: "UsageMeter | None" = None
    extra_usage: "ExtraUsage | None" = None

    @classmethod
    def from_dict(cls, data: "Mapping[str, Any]") -> "UsageSnapshot":
        extra = data.get("extra_usage")
        return cls(
            five_hour=UsageMeter.from_dict(data["five_hour"]),
            seven_day=UsageMeter.from_dict(data["seven_day"]),
            extra_usage=ExtraUsage.from_dict(extra) if extra is not None else None,
            **{key: _optional_meter(data, key) for key in OPTIONAL_METERS},
        )

    def meters(self) -> "dict[str, UsageMeter]":
        """
        returns every present meter keyed by its wire name.
        """
        found = {"five_hour": self.five_hour, "seven_day": self.seven_day}
        for key in OPTIONAL_METERS:
            meter = getattr(self, key)
            if meter is not None:
                found[key] = meter
        return found

    def to_dict(self) -> "dict[str, Any]":
        out: "dict[str, Any]" = {
            "five_hour": self.five_hour.to_dict(),
            "seven_day": self.seven_day.to_dict(),
        }
        for key in OPTIONAL_METERS:
            meter = getattr(self, key)
            out[key] = meter.to_dict() if meter is not None else None
        out["extra_usage"] = (
            self.extra_usage.to_dict() if self.extra_usage is not None else None
        )
        return out


@dataclass(frozen=True, slots=True)
class SecondaryUsageItem:
    model: "str"
    gross_quantity: "float"

    def to_dict(self) -> "dict[str, Any]":
        return {"model": self.model, "gross_quantity": self.gross_quantity}


def next_month_reset(now: "datetime | None" = None) -> "str":
    """
    returns the first instant of the next calendar month in UTC as an
    RFC-3339 string.
    """
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    if now.month == 12:
        reset = datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        reset = datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)
    return reset.isoformat()


@dataclass(frozen=True, slots=True)
class SecondarySnapshot:
    """
    SecondarySnapshot is the monthly premium request usage of the
    secondary source.
    """

    total_requests: "float"
    monthly_limit: "float"
    utilization: "float"
    resets_at: "str"
    items: "tuple[SecondaryUsageItem, ...]" = ()

    @classmethod
    def from_usage(
        cls,
        total_requests: "float",
        items: "Iterable[SecondaryUsageItem]",
        monthly_limit: "float",
        now: "datetime | None" = None,
    ) -> "SecondarySnapshot":
        """
        builds a snapshot from the summed request count and the per-model
        items. monthly_limit must be positive, it is validated when the
        secondary config is loaded.
        """
        return cls(
            total_requests=total_requests,
            monthly_limit=monthly_limit,
            utilization=total_requests / monthly_limit * 100,
            resets_at=next_month_reset(now),
            items=tuple(items),
        )

    def to_dict(self) -> "dict[str, Any]":
        return {
            "total_requests": self.total_requests,
            "monthly_limit": self.monthly_limit,
            "utilization": self.utilization,
            "resets_at": self.resets_at,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass(frozen=True, slots=True)
class CombinedSnapshot:
    primary: "UsageSnapshot"
    secondary: "SecondarySnapshot | None" = None

    def to_dict(self) -> "dict[str, Any]":
        return {
            "primary": self.primary.to_dict(),
            "secondary": (
                self.secondary.to_dict() if self.secondary is not None else None
            ),
        }
