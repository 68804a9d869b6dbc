"""
KenyaTrade Insights — Dashboard View State

Per-session state for the two dashboard tabs:

    MarketView            idle → loading → loaded | failed
    RecommendationsView   idle → loading → loaded | failed
      └─ logistics panel  not_fetched → loading → loaded | failed   (per item id)

Every dispatch gets a sequence number and only the latest dispatched request
may write its outcome, so a slow earlier response can never overwrite a newer
one. Logistics details are fetched lazily, cached by item id for the lifetime
of the current result set, and discarded when a new result set lands.

All state lives in memory on one event loop; nothing is persisted.
"""

import asyncio
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from typing import Awaitable, Callable

from kenyatrade import analysis
from kenyatrade.analysis import AnalysisFetchError
from kenyatrade.config import log, settings
from kenyatrade.models import (
    AnalysisResult,
    ImportsViewState,
    LogisticsDetails,
    LogisticsPanelState,
    LogisticsStatus,
    RecommendationItem,
    ViewState,
    ViewStatus,
)

MAX_SESSIONS = 500


class AnalysisView:
    """Request state for one tab, guarded by a dispatch sequence number."""

    name = "analysis"

    def __init__(self) -> None:
        self.status = ViewStatus.IDLE
        self.result: AnalysisResult | None = None
        self.error: str | None = None
        self.error_code: str | None = None
        self._issued = 0

    @property
    def latest_sequence(self) -> int:
        return self._issued

    async def _run(self, fetch: Callable[[], Awaitable[AnalysisResult]]) -> bool:
        """
        Dispatch one fetch and apply its outcome if it is still the latest.

        The previous result stays readable while loading. Returns False when
        the outcome was dropped because a newer request had been dispatched.
        """
        self._issued += 1
        seq = self._issued
        self.status = ViewStatus.LOADING
        self.error = None
        self.error_code = None

        try:
            result = await fetch()
        except AnalysisFetchError as e:
            if seq != self._issued:
                log("INFO", "stale failure dropped", view=self.name, sequence=seq, latest=self._issued)
                return False
            self.status = ViewStatus.FAILED
            self.error = e.message
            self.error_code = e.error_code
            return True

        if seq != self._issued:
            log("INFO", "stale response dropped", view=self.name, sequence=seq, latest=self._issued)
            return False
        self.status = ViewStatus.LOADED
        self.result = result
        self._on_result(result)
        return True

    def _on_result(self, result: AnalysisResult) -> None:
        pass

    def state(self) -> ViewState:
        return ViewState(
            status=self.status,
            result=self.result,
            error=self.error,
            error_code=self.error_code,
        )


class MarketView(AnalysisView):
    name = "market"

    def __init__(self, country: str) -> None:
        super().__init__()
        self.country = country

    async def refresh(self, request_id: str | None = None) -> ViewState:
        await self._run(lambda: analysis.get_market_insights(self.country, request_id=request_id))
        return self.state()


@dataclass
class LogisticsEntry:
    status: LogisticsStatus = LogisticsStatus.LOADING
    details: LogisticsDetails | None = None
    error: str | None = None
    error_code: str | None = None
    task: asyncio.Task | None = None


class RecommendationsView(AnalysisView):
    name = "imports"

    def __init__(self, country: str) -> None:
        super().__init__()
        self.topic: str | None = None
        self.country = country
        self._result_country = country
        self._logistics: dict[str, LogisticsEntry] = {}

    async def search(
        self,
        topic: str | None = None,
        country: str | None = None,
        request_id: str | None = None,
    ) -> ImportsViewState:
        topic = (topic or "").strip() or None
        country = (country or "").strip() or self.country
        self.topic = topic
        self.country = country
        await self._run(lambda: analysis.get_import_recommendations(topic, country, request_id=request_id))
        return self.state()

    def _on_result(self, result: AnalysisResult) -> None:
        # Only the latest dispatch is applied, so self.country is the one it asked for.
        self._result_country = self.country
        # New result set: old item ids mean nothing anymore.
        self._logistics = {}

    def state(self) -> ImportsViewState:
        return ImportsViewState(
            status=self.status,
            result=self.result,
            error=self.error,
            error_code=self.error_code,
            topic=self.topic,
            country=self.country,
        )

    # ── Logistics panel ─────────────────────────────────────────────────────

    def find_item(self, item_id: str) -> RecommendationItem:
        """Return the first item with this id in the current result set."""
        items = (self.result.recommendations if self.result else None) or []
        for item in items:
            if item.id == item_id:
                return item
        raise KeyError(item_id)

    def logistics_state(self, item_id: str) -> LogisticsPanelState:
        entry = self._logistics.get(item_id)
        if entry is None:
            return LogisticsPanelState(item_id=item_id, status=LogisticsStatus.NOT_FETCHED)
        return _panel_state(item_id, entry)

    async def open_logistics(self, item_id: str, request_id: str | None = None) -> LogisticsPanelState:
        """
        Show the logistics panel for one recommendation.

        Loaded entries come from the cache. A lookup already in flight for the
        same id is awaited rather than duplicated. Failed entries are retried.

        Raises:
            KeyError: item_id is not in the current result set.
        """
        item = self.find_item(item_id)
        entry = self._logistics.get(item_id)

        stalled = entry is not None and entry.status == LogisticsStatus.LOADING and entry.task is None
        if entry is None or entry.status == LogisticsStatus.FAILED or stalled:
            entry = LogisticsEntry()
            self._logistics[item_id] = entry
            entry.task = asyncio.ensure_future(
                self._fetch_logistics(item, self._result_country, entry, request_id)
            )

        if entry.status == LogisticsStatus.LOADING and entry.task is not None:
            # Shielded: a dropped HTTP request must not cancel the shared lookup.
            await asyncio.shield(entry.task)

        return _panel_state(item_id, entry)

    async def _fetch_logistics(
        self,
        item: RecommendationItem,
        country: str,
        entry: LogisticsEntry,
        request_id: str | None,
    ) -> None:
        try:
            details = await analysis.get_logistics_details(
                item.product_name,
                item.category,
                country,
                request_id=request_id,
            )
        except AnalysisFetchError as e:
            entry.status = LogisticsStatus.FAILED
            entry.error = e.message
            entry.error_code = e.error_code
        else:
            entry.status = LogisticsStatus.LOADED
            entry.details = details
        finally:
            entry.task = None

        if self._logistics.get(item.id) is not entry:
            log("INFO", "logistics response for replaced result set dropped", item_id=item.id, request_id=request_id)


def _panel_state(item_id: str, entry: LogisticsEntry) -> LogisticsPanelState:
    return LogisticsPanelState(
        item_id=item_id,
        status=entry.status,
        details=entry.details,
        error=entry.error,
        error_code=entry.error_code,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Sessions
# ─────────────────────────────────────────────────────────────────────────────


class DashboardSession:
    def __init__(self, country: str | None = None) -> None:
        country = country or settings.default_country
        self.market = MarketView(country)
        self.imports = RecommendationsView(country)


class SessionStore:
    """In-memory session-id → DashboardSession map; oldest sessions are evicted first."""

    def __init__(self, max_sessions: int = MAX_SESSIONS) -> None:
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, DashboardSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def get_or_create(self, session_id: str | None) -> tuple[str, DashboardSession]:
        if session_id and session_id in self._sessions:
            self._sessions.move_to_end(session_id)
            return session_id, self._sessions[session_id]

        # Unknown or missing ids get a server-issued one; clients never pick their own.
        session_id = str(uuid.uuid4())
        session = DashboardSession()
        self._sessions[session_id] = session
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            log("INFO", "dashboard session evicted", session_id=evicted[:8])
        return session_id, session

    def clear(self) -> None:
        self._sessions.clear()


# One store per process
sessions = SessionStore()
