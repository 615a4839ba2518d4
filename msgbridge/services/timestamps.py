from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Literal, Protocol, Union

from msgbridge.services.errors import InvalidTimestamp
from msgbridge.services.result import Err, Ok, Result

RawTimestamp = Union[int, str]
TimestampFormat = Literal["epoch_millis", "iso_seconds"]

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ISO_SECONDS_PATTERN = "%Y-%m-%dT%H:%M:%S"
_ONE_MS = timedelta(milliseconds=1)


class TimestampCodec(Protocol):
    name: str

    def decode(self, raw: object) -> Result[datetime]: ...

    def encode(self, instant: datetime) -> RawTimestamp: ...


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        raise ValueError("timestamp must be timezone-aware")
    return instant.astimezone(timezone.utc)


class EpochMillisCodec:
    """Whole milliseconds since 1970-01-01T00:00:00Z."""

    name = "epoch_millis"

    def decode(self, raw: object) -> Result[datetime]:
        # bool is an int subclass but never a valid timestamp on the wire
        if not isinstance(raw, int) or isinstance(raw, bool):
            return Err(InvalidTimestamp(raw))
        try:
            return Ok(EPOCH + raw * _ONE_MS)
        except OverflowError:
            return Err(InvalidTimestamp(raw))

    def encode(self, instant: datetime) -> int:
        return (_as_utc(instant) - EPOCH) // _ONE_MS


class IsoSecondsCodec:
    """``yyyy-MM-ddTHH:mm:ss`` in UTC, without offset or fractional seconds."""

    name = "iso_seconds"

    def decode(self, raw: object) -> Result[datetime]:
        if not isinstance(raw, str):
            return Err(InvalidTimestamp(raw))
        try:
            parsed = datetime.strptime(raw, ISO_SECONDS_PATTERN)
        except ValueError:
            return Err(InvalidTimestamp(raw))
        # strptime tolerates unpadded fields; only the canonical form is accepted
        if parsed.isoformat(timespec="seconds") != raw:
            return Err(InvalidTimestamp(raw))
        return Ok(parsed.replace(tzinfo=timezone.utc))

    def encode(self, instant: datetime) -> str:
        return _as_utc(instant).replace(tzinfo=None).isoformat(timespec="seconds")


TIMESTAMP_CODECS: dict[str, TimestampCodec] = {
    EpochMillisCodec.name: EpochMillisCodec(),
    IsoSecondsCodec.name: IsoSecondsCodec(),
}


def get_codec(name: str) -> TimestampCodec:
    try:
        return TIMESTAMP_CODECS[name]
    except KeyError:
        raise ValueError(f"unknown timestamp format {name!r}") from None
