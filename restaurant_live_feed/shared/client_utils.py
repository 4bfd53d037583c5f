import sys
from typing import Optional
from urllib.parse import urlencode

from loguru import logger


def configure_logging(level: str = "INFO") -> None:
    """
    Replaces loguru's default sink with a single stderr sink at `level`.
    The CLI calls this once before starting anything.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def build_socket_url(base_url: str, params: Optional[dict] = None) -> str:
    """
    Appends the handshake context (restaurantId, userId, ...) as query parameters.
    Keys whose value is None are left out.
    """
    query = {k: v for k, v in (params or {}).items() if v is not None}
    if not query:
        return base_url
    sep = "&" if "?" in base_url else "?"
    return f"{base_url}{sep}{urlencode(query)}"


def auth_headers(token: Optional[str]) -> dict:
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


def http_base_url(socket_url: str) -> str:
    """ws://host:port/ws -> http://host:port"""
    url = socket_url.replace("ws://", "http://").replace("wss://", "https://")
    scheme, _, rest = url.partition("://")
    host = rest.split("/", 1)[0]
    return f"{scheme}://{host}"
