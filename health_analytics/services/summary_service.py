"""
Cross-collection summary service.

Given a user and a calendar window, queries all five entity collections with
the same filter and merges the results into one HealthSummary. Any single
query failure fails the whole summary; there are no partial results.
"""

import asyncio
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from health_analytics.exceptions import Cancelled, InvalidDateRange
from health_analytics.infrastructure.observability.logging import get_logger
from health_analytics.models.domain.summary_domain import HealthSummary, SummaryWindow
from health_analytics.repositories.health_repositories import HealthRepositories

logger = get_logger(__name__)

DATE_FORMAT = "%Y-%m-%d"


def parse_date(value: str | date, field: str) -> date:
    """Parse a YYYY-MM-DD string, raising InvalidDateRange on anything else."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError) as e:
        raise InvalidDateRange(
            f"Invalid {field}: {value!r} (expected YYYY-MM-DD)", operation="parse_date"
        ) from e


class SummaryAggregator:
    """Daily and ranged summaries over all entity kinds."""

    def __init__(self, repositories: HealthRepositories, timezone: str | ZoneInfo = "UTC"):
        self._repositories = repositories
        self.timezone = timezone if isinstance(timezone, ZoneInfo) else ZoneInfo(timezone)

    def _start_of(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.timezone).astimezone(UTC)

    def _window(self, first_day: date, last_day: date) -> SummaryWindow:
        try:
            return SummaryWindow(
                start=self._start_of(first_day),
                end=self._start_of(last_day + timedelta(days=1)),
            )
        except OverflowError as e:
            raise InvalidDateRange(
                f"Date range {first_day.isoformat()}..{last_day.isoformat()} is outside the supported calendar",
                operation="window",
            ) from e

    def daily_window(self, day: str | date) -> SummaryWindow:
        """[day 00:00, next day 00:00) in the reference time zone."""
        parsed = parse_date(day, "date")
        return self._window(parsed, parsed)

    def range_window(self, start_date: str | date, end_date: str | date) -> SummaryWindow:
        """[start_date 00:00, end_date + 1 day 00:00); both bounds inclusive as days."""
        start = parse_date(start_date, "start date")
        end = parse_date(end_date, "end date")
        return self._window(start, end)

    async def get_daily_summary(
        self, user_id: str, day: str | date, *, timeout: float | None = None
    ) -> HealthSummary:
        return await self.summarize(user_id, self.daily_window(day), timeout=timeout)

    async def get_weekly_summary(
        self,
        user_id: str,
        start_date: str | date,
        end_date: str | date,
        *,
        timeout: float | None = None,
    ) -> HealthSummary:
        return await self.summarize(user_id, self.range_window(start_date, end_date), timeout=timeout)

    async def summarize(
        self, user_id: str, window: SummaryWindow, *, timeout: float | None = None
    ) -> HealthSummary:
        """Run the five collection queries concurrently under one deadline."""
        query = window.to_filter(user_id)
        repositories = self._repositories.all()

        tasks = [
            asyncio.create_task(repository.query(query), name=f"summary:{repository.kind.name}")
            for repository in repositories
        ]

        try:
            async with asyncio.timeout(timeout):
                results = await asyncio.gather(*tasks)
        except TimeoutError as e:
            logger.warning(
                "Summary abandoned at deadline",
                user_id=user_id,
                window_start=window.start.isoformat(),
                timeout=timeout,
            )
            raise Cancelled(f"Summary exceeded {timeout}s deadline", operation="summarize") from e
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            # Every task is awaited before leaving, failed or cancelled
            await asyncio.gather(*tasks, return_exceptions=True)

        summary = HealthSummary(
            **{
                repository.kind.collection: records
                for repository, records in zip(repositories, results, strict=True)
            }
        )

        logger.info(
            "Summary assembled",
            user_id=user_id,
            window_start=window.start.isoformat(),
            window_end=window.end.isoformat(),
            total_records=summary.total_records(),
        )
        return summary
