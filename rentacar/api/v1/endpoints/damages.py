"""Customer damage report endpoints proxied to the backend."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response

from rentacar.api.endpoints import endpoints
from rentacar.api.route_handler import RouteClient, api_error_response, get_route_client
from rentacar.core.exceptions import ApiException
from rentacar.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/me")
async def my_damages(
    request: Request,
    response: Response,
    client: Annotated[RouteClient, Depends(get_route_client)],
) -> Any:
    """Damage reports filed against the signed-in customer's rentals."""
    url = endpoints.damages.me
    if request.url.query:
        url = f"{url}?{request.url.query}"

    try:
        return await client.get(url, cache="no-store", tags=["damages", "my-damages"])
    except ApiException as e:
        logger.error(
            "GET /damages/me failed",
            extra={"status_code": e.status, "error": e.message},
        )
        return api_error_response(e, response)
