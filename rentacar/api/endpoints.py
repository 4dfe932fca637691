"""Backend REST endpoint registry."""

from rentacar.config import settings

API_BASE_URL = settings.API_BASE_URL


class _Auth:
    login = f"{API_BASE_URL}/api/auth/login"
    register = f"{API_BASE_URL}/api/auth/register"
    refresh = f"{API_BASE_URL}/api/auth/refresh"


class _Rentals:
    me = f"{API_BASE_URL}/api/rentals/me"

    @staticmethod
    def cancel(rental_id: int) -> str:
        return f"{API_BASE_URL}/api/rentals/{rental_id}/cancel"


class _Damages:
    me = f"{API_BASE_URL}/api/damages/me"


class Endpoints:
    """Absolute URLs of the backend operations used by the web app."""

    auth = _Auth
    rentals = _Rentals
    damages = _Damages


endpoints = Endpoints()
