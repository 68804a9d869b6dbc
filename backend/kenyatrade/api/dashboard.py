"""
KenyaTrade Insights — Dashboard API

GET  /api/dashboard/market                         market tab state
POST /api/dashboard/market/refresh                 run market insights
GET  /api/dashboard/imports                        import tab state
POST /api/dashboard/imports/search                 run import recommendations
GET  /api/dashboard/imports/{item_id}/logistics    lazy logistics lookup for one card

State is per browser session (kt_session cookie). Analysis failures are
returned as a "failed" state with a message and error code, not as HTTP errors,
so the page can offer a retry.
"""

import uuid

from fastapi import APIRouter, Cookie, HTTPException, Request, Response

from kenyatrade.config import generate_error_code, log
from kenyatrade.dashboard import DashboardSession, sessions
from kenyatrade.models import ImportSearchRequest, ImportsViewState, LogisticsPanelState, ViewState

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])
SESSION_COOKIE = "kt_session"


def _get_session(response: Response, kt_session: str | None) -> DashboardSession:
    """Look up (or start) the caller's dashboard session and keep the cookie set."""
    session_id, session = sessions.get_or_create(kt_session)
    if kt_session != session_id:
        response.set_cookie(
            key=SESSION_COOKIE,
            value=session_id,
            httponly=True,
            samesite="lax",
            path="/",
        )
    return session


def _request_id(request: Request) -> str:
    return request.headers.get("X-Request-Id") or uuid.uuid4().hex[:12]


# -----------------------------------------------------------------------------
# Market tab
# -----------------------------------------------------------------------------


@router.get("/market", response_model=ViewState)
async def market_state(response: Response, kt_session: str | None = Cookie(default=None)) -> ViewState:
    """GET /api/dashboard/market — current market view state, no LLM call."""
    return _get_session(response, kt_session).market.state()


@router.post("/market/refresh", response_model=ViewState)
async def market_refresh(
    request: Request,
    response: Response,
    kt_session: str | None = Cookie(default=None),
) -> ViewState:
    """
    POST /api/dashboard/market/refresh

    Run market insights and return the resulting state. If a newer refresh was
    dispatched meanwhile, the state reflects that one (possibly still loading).
    """
    session = _get_session(response, kt_session)
    return await session.market.refresh(request_id=_request_id(request))


# -----------------------------------------------------------------------------
# Import tab
# -----------------------------------------------------------------------------


@router.get("/imports", response_model=ImportsViewState)
async def imports_state(response: Response, kt_session: str | None = Cookie(default=None)) -> ImportsViewState:
    """GET /api/dashboard/imports — current recommendations view state, no LLM call."""
    return _get_session(response, kt_session).imports.state()


@router.post("/imports/search", response_model=ImportsViewState)
async def imports_search(
    body: ImportSearchRequest,
    request: Request,
    response: Response,
    kt_session: str | None = Cookie(default=None),
) -> ImportsViewState:
    """
    POST /api/dashboard/imports/search

    Body: {"topic": optional str, "country": optional str}. An empty topic runs
    the general survey; a topic runs the deep-dive.
    """
    session = _get_session(response, kt_session)
    return await session.imports.search(body.topic, body.country, request_id=_request_id(request))


@router.get("/imports/{item_id:path}/logistics", response_model=LogisticsPanelState)
async def imports_logistics(
    item_id: str,
    request: Request,
    response: Response,
    kt_session: str | None = Cookie(default=None),
) -> LogisticsPanelState:
    """
    GET /api/dashboard/imports/{item_id}/logistics

    Fetch logistics on first view, then serve from the per-result-set cache.
    Returns 404 if the item is not part of the current recommendations. Ids
    come from the model and may contain "/", hence the path converter.
    """
    session = _get_session(response, kt_session)
    request_id = _request_id(request)
    try:
        session.imports.find_item(item_id)
    except KeyError:
        code = generate_error_code()
        log("WARN", "logistics requested for unknown item", item_id=item_id, request_id=request_id, error_code=code)
        raise HTTPException(
            status_code=404,
            detail={"message": "Recommendation not found. Run a new search.", "error_code": code},
        )
    return await session.imports.open_logistics(item_id, request_id=request_id)
