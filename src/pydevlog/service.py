"""High-level entry point consumed by the HTTP layer."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import UTC, date, datetime

from pydevlog.aggregation.matrix import MatrixBuilder, apply_column_labels
from pydevlog.aggregation.rollups import AggregationEngine
from pydevlog.backends.protocols import ColumnLabelLookup, EventStore, ResultCache, SecretLookup
from pydevlog.config import DevLogConfig
from pydevlog.models import (
    DeviceReport,
    ErrorReport,
    EventFilter,
    Event,
    OrganizationMatrix,
    OrganizationMatrixRange,
    Page,
    PageInfo,
    PaginatedEvents,
    SessionDetail,
    SessionSummary,
    SigningPrincipal,
    Submission,
    TimeRangeReport,
    datetime_to_ms,
)
from pydevlog.reports import ReportCache
from pydevlog.verifier import SignatureVerifier

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DevLogService:
    """Ingestion and reporting over explicit collaborators.

    Usage::

        service = DevLogService(
            secrets=directory,
            store=SqliteEventStore(config.sqlite_path),
            cache=RedisResultCache.from_url(config.redis_url),
            config=config,
            labels=directory,
        )
        event = await service.ingest(Submission.model_validate(body))
        matrix = await service.get_organization_matrix(event.project_id, "2026-01-05")
    """

    def __init__(
        self,
        *,
        secrets: SecretLookup,
        store: EventStore,
        cache: ResultCache,
        config: DevLogConfig | None = None,
        labels: ColumnLabelLookup | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config or DevLogConfig()
        self._store = store
        self._labels = labels
        self._clock = clock
        self._verifier = SignatureVerifier(
            secrets,
            max_skew_ms=self._config.max_skew_ms,
            clock=lambda: datetime_to_ms(self._clock()),
        )
        self._engine = AggregationEngine(store)
        self._matrices = MatrixBuilder(store, tz=self._config.tzinfo, max_range_days=self._config.max_range_days)
        self._reports = ReportCache(self._engine, self._matrices, cache, self._config, clock=clock)

    @property
    def config(self) -> DevLogConfig:
        return self._config

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def verify_signature(self, event: Event, timestamp: int, signature: str) -> SigningPrincipal:
        return await self._verifier.verify(event, timestamp, signature)

    async def ingest(self, submission: Submission) -> Event:
        """Verify a signed submission, store it and drop stale cached reports."""
        event = submission.to_event(self._clock())
        await self._verifier.verify(event, submission.timestamp, submission.signature)
        stored = await self._store.append(event)
        _logger.info(
            "Stored %s event seq=%s project=%s device=%s key=%s",
            stored.category,
            stored.sequence_id,
            stored.project_id,
            stored.device_id,
            stored.key,
        )
        await self._reports.invalidate_device(stored.device_id)
        return stored

    # ------------------------------------------------------------------
    # Event listing
    # ------------------------------------------------------------------

    async def get_event(self, sequence_id: int) -> Event | None:
        event = await self._store.get(sequence_id)
        if event is None:
            _logger.debug("Event %s not found", sequence_id)
        return event

    async def query_events(
        self,
        event_filter: EventFilter | None = None,
        page: Page | None = None,
    ) -> PaginatedEvents:
        """One page of matching events, newest first, with the total match count."""
        event_filter = event_filter or EventFilter()
        page = page or Page()
        events = await self._store.query(event_filter, page)
        total = await self._store.count(event_filter)
        total_pages = math.ceil(total / page.page_size)
        _logger.info(
            "Event query page=%d size=%d returned=%d total=%d",
            page.page,
            page.page_size,
            len(events),
            total,
        )
        return PaginatedEvents(
            data=events,
            pagination=PageInfo(page=page.page, page_size=page.page_size, total=total, total_pages=total_pages),
        )

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    async def get_device_report(self, device_id: str) -> DeviceReport:
        return await self._reports.device_report(device_id)

    async def get_time_range_report(self, start_ms: int, end_ms: int) -> TimeRangeReport:
        return await self._reports.time_range_report(start_ms, end_ms)

    async def get_error_report(self) -> ErrorReport:
        return await self._reports.error_report()

    async def get_organization_matrix(self, project_id: int, day: date | str) -> OrganizationMatrix:
        matrix = await self._reports.organization_matrix(project_id, day)
        return apply_column_labels(matrix, await self._column_labels(project_id))

    async def get_organization_matrix_range(
        self,
        project_id: int,
        start_date: date | str,
        end_date: date | str,
    ) -> OrganizationMatrixRange:
        report = await self._reports.organization_matrix_range(project_id, start_date, end_date)
        labels = await self._column_labels(project_id)
        if not labels:
            return report
        return report.model_copy(
            update={
                "daily": [apply_column_labels(matrix, labels) for matrix in report.daily],
                "combined": apply_column_labels(report.combined, labels),
            }
        )

    async def get_project_sessions(self, project_id: int) -> list[SessionSummary]:
        return await self._engine.sessions_by_project(project_id)

    async def get_session_detail(self, session_id: str) -> SessionDetail | None:
        return await self._engine.session_detail(session_id)

    async def _column_labels(self, project_id: int) -> dict[str, str] | None:
        if self._labels is None:
            return None
        labels = await self._labels.find_column_labels(project_id)
        return dict(labels) if labels else None
