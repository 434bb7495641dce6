"""
Public beacon endpoints: the collect endpoint and the tracker script.
"""

import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from ..config import AnalyticsConfig
from ..core.ingest import EventIngestor
from ..core.models import ClientContext
from ..errors import IngestError
from ..tracker import TRACKER_JS

logger = logging.getLogger(__name__)

# Country values the edge uses for "unknown" and "Tor"
IGNORED_COUNTRIES = {"XX", "T1"}


def client_context(request: Request, geo_headers: tuple[str, ...] = ()) -> ClientContext:
    """Collect the trusted request metadata ingestion needs.

    The client IP is the first X-Forwarded-For hop, then the socket peer.
    """
    headers = request.headers

    ip = None
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip() or None
    if not ip and request.client:
        ip = request.client.host

    country = None
    for name in geo_headers:
        value = (headers.get(name) or "").strip().upper()
        if value and value not in IGNORED_COUNTRIES:
            country = value
            break

    return ClientContext(
        ip=ip or "127.0.0.1",
        user_agent=headers.get("user-agent") or "unknown",
        country=country,
        origin=headers.get("origin"),
        referer=headers.get("referer"),
    )


def create_collect_router(ingestor: EventIngestor, config: AnalyticsConfig) -> APIRouter:
    """Create the router that receives beacons and serves tracker.js.

    Args:
        ingestor: Writes accepted beacons
        config: Analytics configuration
    """
    router = APIRouter(tags=["collect"])

    cors_headers = {
        "Access-Control-Allow-Origin": config.cors_allow_origin,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }

    @router.options(config.collect_path)
    async def collect_preflight():
        """CORS preflight for clients that send application/json."""
        return JSONResponse({}, headers=cors_headers)

    @router.post(config.collect_path)
    async def collect(request: Request):
        """Accept one beacon. The body is read raw whatever its content type."""
        body = await request.body()
        context = client_context(request, config.geo_headers)

        try:
            await ingestor.ingest(body, context)
        except IngestError as e:
            return JSONResponse(e.to_dict(), status_code=e.status_code, headers=cors_headers)

        return JSONResponse({"success": True}, headers=cors_headers)

    @router.get("/tracker.js")
    async def tracker_script():
        """Serve the beacon script."""
        return Response(
            content=TRACKER_JS,
            media_type="application/javascript",
            headers={"Cache-Control": "public, max-age=3600", **cors_headers},
        )

    return router
