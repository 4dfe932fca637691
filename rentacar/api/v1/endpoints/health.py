"""Health check endpoint."""

from typing import Annotated

import httpx
from fastapi import APIRouter, Depends

from rentacar import __version__
from rentacar.api.route_handler import get_http_client
from rentacar.config import settings
from rentacar.schemas import HealthCheckResponse

router = APIRouter()


@router.get("", response_model=HealthCheckResponse)
async def health_check(
    http: Annotated[httpx.AsyncClient, Depends(get_http_client)],
) -> HealthCheckResponse:
    """
    Health check endpoint.

    Returns the status of the web app and whether the backend answers.
    Any HTTP answer counts as reachable.
    """
    try:
        await http.head(settings.API_BASE_URL)
        backend_status = "reachable"
    except httpx.HTTPError as e:
        backend_status = f"error: {str(e)}"

    return HealthCheckResponse(
        status="healthy" if backend_status == "reachable" else "degraded",
        version=__version__,
        backend=backend_status,
    )
