"""Normalization of failed backend responses."""

import json
from typing import Any, Dict, Optional

import httpx

from rentacar.core.exceptions import GENERIC_ERROR_MESSAGE, ApiException
from rentacar.schemas.common import ApiError, utc_now_iso


def _string_errors(value: Any) -> Optional[Dict[str, str]]:
    if not isinstance(value, dict):
        return None
    return {str(key): str(item) for key, item in value.items()}


def parse_error_response(response: httpx.Response) -> ApiError:
    """Build an ApiError from a non-success response.

    The JSON body provides message, timestamp, path and field errors when it
    can be decoded. Otherwise the status line is used. Never raises.
    """
    status_text = response.reason_phrase or ""

    try:
        data = json.loads(response.content) if response.content else None
    except ValueError:
        data = None

    if not isinstance(data, dict):
        return ApiError(
            status=response.status_code,
            message=status_text or GENERIC_ERROR_MESSAGE,
            timestamp=utc_now_iso(),
        )

    message = data.get("message")
    timestamp = data.get("timestamp")
    path = data.get("path")

    return ApiError(
        status=response.status_code,
        message=message
        if isinstance(message, str) and message
        else status_text or GENERIC_ERROR_MESSAGE,
        timestamp=timestamp
        if isinstance(timestamp, str) and timestamp
        else utc_now_iso(),
        path=path if isinstance(path, str) else None,
        errors=_string_errors(data.get("errors")),
    )


def raise_for_response(response: httpx.Response) -> None:
    """Raise ApiException if the response is not a success."""
    if not response.is_success:
        raise ApiException(parse_error_response(response))
