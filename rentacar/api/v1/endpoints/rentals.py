"""Customer rental endpoints proxied to the backend."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response

from rentacar.api.endpoints import endpoints
from rentacar.api.route_handler import RouteClient, api_error_response, get_route_client
from rentacar.core.exceptions import ApiException
from rentacar.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/me")
async def my_rentals(
    request: Request,
    response: Response,
    client: Annotated[RouteClient, Depends(get_route_client)],
) -> Any:
    """Rentals of the signed-in customer, with the caller's query string."""
    url = endpoints.rentals.me
    if request.url.query:
        url = f"{url}?{request.url.query}"

    try:
        return await client.get(url, cache="no-store", tags=["rentals", "my-rentals"])
    except ApiException as e:
        logger.error(
            "GET /rentals/me failed",
            extra={"status_code": e.status, "error": e.message},
        )
        return api_error_response(e, response)


@router.post("/{rental_id}/cancel")
async def cancel_rental(
    rental_id: int,
    response: Response,
    client: Annotated[RouteClient, Depends(get_route_client)],
) -> Any:
    """Cancel one of the customer's pending rentals."""
    try:
        return await client.post(endpoints.rentals.cancel(rental_id), cache="no-store")
    except ApiException as e:
        logger.error(
            "POST /rentals/{id}/cancel failed",
            extra={"rental_id": rental_id, "status_code": e.status, "error": e.message},
        )
        return api_error_response(e, response)
