from __future__ import annotations

from datetime import datetime, timezone


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive; everything stored is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(text: str) -> datetime:
    return to_utc(datetime.fromisoformat(text.strip().replace("Z", "+00:00")))


def isoformat_z(value: datetime) -> str:
    return to_utc(value).isoformat().replace("+00:00", "Z")
