"""Map raw platform health records onto the canonical sample models.

Two record shapes are understood:

Health Connect (Android)::

    steps:      {"count": 120, "startTime": "...", "endTime": "..."}
    heart rate: {"bpm": 62, "time": "..."}
                or {"samples": [{"beatsPerMinute": 62, "time": "..."}, ...]}
    sleep:      {"startTime": "...", "endTime": "...", "stage": "deep"}

HealthKit (iOS)::

    steps:      {"value": 120, "startDate": "...", "endDate": "..."}
    heart rate: {"value": 62.0, "startDate": "...", "endDate": "..."}
    sleep:      {"startDate": "...", "endDate": "...", "duration": 7.5,
                 "category": "asleep", "stage": "core"}

Everything here is a pure function: no I/O, inputs are never mutated, and
the same payload always yields equal samples.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable

from healthsync.errors import NormalizationError
from healthsync.health.base import (
    HealthSample,
    RecordType,
    SleepSample,
    TimeWindow,
    Unit,
)

logger = logging.getLogger("healthsync.health.normalizer")

HEALTH_CONNECT = "health_connect"
HEALTHKIT = "healthkit"

# Sleep categories that do not count as time asleep
_NON_ASLEEP_CATEGORIES: frozenset[str] = frozenset({
    "inbed",
    "awake",
    "out_of_bed",
    "awake_in_bed",
    "hkcategoryvaluesleepanalysisinbed",
    "hkcategoryvaluesleepanalysisawake",
})

# Same, as the platforms' raw integer codes
_NON_ASLEEP_CODES: dict[str, frozenset[int]] = {
    # HKCategoryValueSleepAnalysis: 0 inBed, 2 awake
    HEALTHKIT: frozenset({0, 2}),
    # SleepSessionRecord stage: 1 awake, 3 out of bed, 7 awake in bed
    HEALTH_CONNECT: frozenset({1, 3, 7}),
}

_SECONDS_PER_HOUR = 3600.0


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------


def parse_timestamp(value: Any, field_name: str = "timestamp") -> datetime:
    """Parse an ISO-8601 string or datetime into an aware UTC datetime.

    Naive values are taken as UTC.

    Raises:
        NormalizationError: If the value is missing or unparseable.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as exc:
            raise NormalizationError(f"Malformed {field_name}: {value!r}") from exc
    else:
        raise NormalizationError(f"Missing {field_name}")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _number(record: dict, *keys: str) -> float:
    for key in keys:
        if key in record and record[key] is not None:
            value = record[key]
            if isinstance(value, bool):
                raise NormalizationError(f"Non-numeric {key}: {value!r}", record=record)
            try:
                return float(value)
            except (TypeError, ValueError) as exc:
                raise NormalizationError(
                    f"Non-numeric {key}: {value!r}", record=record
                ) from exc
    raise NormalizationError(f"Missing {' / '.join(keys)}", record=record)


def _timestamp(record: dict, key: str) -> datetime:
    try:
        return parse_timestamp(record.get(key), key)
    except NormalizationError as exc:
        raise NormalizationError(exc.message, record=record) from exc


def _span(record: dict, start_key: str, end_key: str) -> tuple[datetime, datetime]:
    start = _timestamp(record, start_key)
    end = _timestamp(record, end_key)
    if end < start:
        raise NormalizationError(
            f"{end_key} precedes {start_key}", record=record
        )
    return start, end


def _require_mapping(record: Any) -> dict:
    if not isinstance(record, dict):
        raise NormalizationError(f"Expected an object, got {type(record).__name__}")
    return record


def _in_window(samples: Iterable[HealthSample], window: TimeWindow | None) -> list:
    if window is None:
        return list(samples)
    return [s for s in samples if window.contains(s.start_time)]


# ---------------------------------------------------------------------------
# Per-type normalizers
# ---------------------------------------------------------------------------


def normalize_steps(
    platform: str, raw_records: Iterable[Any], window: TimeWindow | None = None
) -> list[HealthSample]:
    """Normalize step records into ``count`` samples."""
    samples = []
    for raw in raw_records:
        record = _require_mapping(raw)
        if platform == HEALTH_CONNECT:
            value = _number(record, "count")
            start, end = _span(record, "startTime", "endTime")
        else:
            value = _number(record, "value")
            start, end = _span(record, "startDate", "endDate")
        samples.append(HealthSample(value=value, start_time=start, end_time=end, unit=Unit.COUNT))
    return _in_window(samples, window)


def normalize_heart_rate(
    platform: str, raw_records: Iterable[Any], window: TimeWindow | None = None
) -> list[HealthSample]:
    """Normalize heart-rate records into ``bpm`` samples.

    Health Connect reports instantaneous readings (``time``), so start and
    end are the same instant.  A ``HeartRateRecord`` series with nested
    ``samples`` is flattened into one sample per reading.
    """
    samples = []
    for raw in raw_records:
        record = _require_mapping(raw)
        if platform == HEALTH_CONNECT:
            readings = record["samples"] if isinstance(record.get("samples"), list) else [record]
            for reading in readings:
                reading = _require_mapping(reading)
                bpm = _number(reading, "bpm", "beatsPerMinute")
                at = _timestamp(reading, "time")
                samples.append(HealthSample(value=bpm, start_time=at, end_time=at, unit=Unit.BPM))
        else:
            bpm = _number(record, "value")
            start, end = _span(record, "startDate", "endDate")
            samples.append(HealthSample(value=bpm, start_time=start, end_time=end, unit=Unit.BPM))
    return _in_window(samples, window)


def _not_asleep(code: Any, platform: str | None) -> bool:
    if isinstance(code, str):
        return code.lower() in _NON_ASLEEP_CATEGORIES
    if isinstance(code, int) and not isinstance(code, bool):
        return code in _NON_ASLEEP_CODES.get(platform, frozenset())
    return False


def is_asleep(record: dict, platform: str | None = None) -> bool:
    """Return False for categories such as "in bed" or "awake".

    Integer codes are only understood when ``platform`` is given, since the
    two stores number their categories differently.
    """
    category = record.get("category", record.get("value"))
    if _not_asleep(category, platform):
        return False
    return not _not_asleep(record.get("stage"), platform)


def normalize_sleep(
    platform: str, raw_records: Iterable[Any], window: TimeWindow | None = None
) -> list[SleepSample]:
    """Normalize sleep records into ``hours`` samples, dropping non-asleep periods."""
    if platform == HEALTH_CONNECT:
        start_key, end_key = "startTime", "endTime"
    else:
        start_key, end_key = "startDate", "endDate"

    samples = []
    for raw in raw_records:
        record = _require_mapping(raw)
        if not is_asleep(record, platform):
            continue
        start, end = _span(record, start_key, end_key)
        if record.get("duration") is not None:
            duration = _number(record, "duration")
        else:
            duration = (end - start).total_seconds() / _SECONDS_PER_HOUR
        stage = record.get("stage")
        samples.append(
            SleepSample(
                value=duration,
                start_time=start,
                end_time=end,
                duration_hours=duration,
                stage=str(stage) if stage is not None else None,
            )
        )
    return _in_window(samples, window)


_NORMALIZERS: dict[RecordType, Callable[..., list]] = {
    RecordType.STEPS: normalize_steps,
    RecordType.HEART_RATE: normalize_heart_rate,
    RecordType.SLEEP: normalize_sleep,
}


def normalize_samples(
    platform: str,
    record_type: RecordType,
    raw_records: Iterable[Any] | None,
    window: TimeWindow | None = None,
) -> list[HealthSample]:
    """Normalize one record type from one platform.

    Args:
        platform:    'health_connect' or 'healthkit'.
        record_type: Which record type ``raw_records`` holds.
        raw_records: Raw records as returned by the platform reader.
        window:      Optional half-open window; samples starting outside it
                     are dropped.

    Returns:
        Canonical samples in input order.

    Raises:
        NormalizationError: On any malformed record or an unknown platform.
    """
    if platform not in (HEALTH_CONNECT, HEALTHKIT):
        raise NormalizationError(f"Unknown platform: {platform!r}")
    if raw_records is None:
        return []
    record_type = RecordType(record_type)
    samples = _NORMALIZERS[record_type](platform, raw_records, window)
    logger.debug("Normalized %d %s samples from %s", len(samples), record_type.value, platform)
    return samples
