"""
KenyaTrade Insights — FastAPI Application Factory

App creation, middleware (CORS, request ID logging), router registration and
the dashboard page.
Run with: uvicorn kenyatrade.main:app --reload
"""

from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from kenyatrade.api import dashboard
from kenyatrade.config import log, settings

VERSION = "0.1.0"
DASHBOARD_PAGE = Path(__file__).parent / "static" / "index.html"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Log each request with its X-Request-Id and echo the id back.

    The page sends one per fetch; the routes pass it down to the analysis and
    LLM log lines.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-Id")
        log("INFO", "request received", method=request.method, path=request.url.path, request_id=request_id or "none")
        response = await call_next(request)
        if request_id:
            response.headers["X-Request-Id"] = request_id
        return response


def create_app() -> FastAPI:
    """Build the app: CORS for the configured origins, request-id logging,
    the dashboard API and the page itself at /."""
    app = FastAPI(
        title="KenyaTrade Insights API",
        version=VERSION,
        description="Search-grounded market insights and import opportunities, rendered as a dashboard.",
    )

    # CORS
    origins = [origin.strip() for origin in settings.cors_origins.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID logging
    app.add_middleware(RequestIdMiddleware)

    app.include_router(dashboard.router)
    app.add_api_route("/api/health", health_check, methods=["GET"])
    app.add_api_route("/", dashboard_page, methods=["GET"], include_in_schema=False)
    return app


async def health_check() -> dict:
    return {"status": "ok", "version": VERSION}


async def dashboard_page() -> FileResponse:
    return FileResponse(DASHBOARD_PAGE, media_type="text/html")


app = create_app()
