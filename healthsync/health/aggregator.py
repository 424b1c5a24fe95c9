"""Concurrent fetch of steps, heart rate and sleep into one report.

The three reads are independent, so they are started together and joined:

1. Fan out: one task per record type over the same ``[start, end)`` window
2. Fan in: wait until all finish or one fails
3. On failure: cancel the reads still running and raise the failed read's
   error (steps before heart rate before sleep when several have failed)
4. On success: normalize each result and build the report

There is no partial-result mode.  Callers must hold all three read
permissions before calling ``fetch``; the controller enforces this.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from healthsync.health.base import (
    RECORD_TYPE_PRIORITY,
    AggregatedHealthReport,
    PlatformHealthReader,
    RecordType,
    TimeWindow,
)
from healthsync.health.normalizer import normalize_samples, parse_timestamp

logger = logging.getLogger("healthsync.health.aggregator")


class HealthAggregator:
    """Fetch and combine the three record types from one platform reader.

    Usage::

        aggregator = HealthAggregator(build_reader())
        report = await aggregator.fetch(start, end)
        print(report.total_steps, report.avg_heart_rate)
    """

    def __init__(self, reader: PlatformHealthReader) -> None:
        self._reader = reader

    @property
    def reader(self) -> PlatformHealthReader:
        return self._reader

    async def fetch(self, start: datetime, end: datetime) -> AggregatedHealthReport:
        """Read, normalize and aggregate all three record types for ``[start, end)``.

        Raises:
            ValueError:             If ``start`` is not before ``end``.
            NormalizationError:     If any raw record is malformed.
            HealthSyncError:        The first failed read's error.
        """
        window = TimeWindow(
            start=parse_timestamp(start, "start"), end=parse_timestamp(end, "end")
        )
        if window.start >= window.end:
            raise ValueError(f"Empty time window: {window.start} >= {window.end}")

        raw = await self._read_all(window)

        platform = self._reader.PLATFORM
        report = AggregatedHealthReport.build(
            steps=normalize_samples(platform, RecordType.STEPS, raw[RecordType.STEPS], window),
            heart_rate=normalize_samples(
                platform, RecordType.HEART_RATE, raw[RecordType.HEART_RATE], window
            ),
            sleep=normalize_samples(platform, RecordType.SLEEP, raw[RecordType.SLEEP], window),
        )
        logger.info(
            "%s fetch %s → %s: %d steps samples, %d heart rate, %d sleep",
            self._reader.DISPLAY_NAME,
            window.start.isoformat(),
            window.end.isoformat(),
            len(report.steps),
            len(report.heart_rate),
            len(report.sleep),
        )
        return report

    async def today_steps(self, now: datetime | None = None) -> int:
        """Total steps from local midnight until ``now``."""
        now = now or datetime.now(timezone.utc).astimezone()
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        if midnight >= now:
            return 0
        window = TimeWindow(
            start=parse_timestamp(midnight, "start"), end=parse_timestamp(now, "end")
        )
        raw = await self._reader.read_samples(RecordType.STEPS, window.start, window.end)
        steps = normalize_samples(self._reader.PLATFORM, RecordType.STEPS, raw, window)
        return int(sum(s.value for s in steps))

    async def _read_all(self, window: TimeWindow) -> dict[RecordType, list[dict]]:
        tasks = {
            record_type: asyncio.create_task(
                self._reader.read_samples(record_type, window.start, window.end),
                name=f"read-{record_type.value}",
            )
            for record_type in RECORD_TYPE_PRIORITY
        }

        done, pending = await asyncio.wait(
            tasks.values(), return_when=asyncio.FIRST_EXCEPTION
        )

        failed = [
            record_type
            for record_type in RECORD_TYPE_PRIORITY
            if tasks[record_type] in done
            and not tasks[record_type].cancelled()
            and tasks[record_type].exception() is not None
        ]
        if failed:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            for record_type in failed[1:]:
                logger.debug(
                    "Discarding %s read error: %s", record_type.value, tasks[record_type].exception()
                )
            first = failed[0]
            logger.warning(
                "%s read failed, discarding other results: %s",
                first.value,
                tasks[first].exception(),
            )
            raise tasks[first].exception()

        return {record_type: task.result() for record_type, task in tasks.items()}
