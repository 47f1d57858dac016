from __future__ import annotations

import datetime
from collections.abc import Callable

# Services take a Clock so tests can pin time; epoch seconds everywhere.
Clock = Callable[[], int]


def utc_now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


def to_iso(epoch_seconds: int) -> str:
    return (
        datetime.datetime.fromtimestamp(epoch_seconds, datetime.UTC)
        .isoformat()
        .replace("+00:00", "Z")
    )
