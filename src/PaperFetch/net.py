# === NAVMAP v1 ===
# {
#   "module": "PaperFetch.net",
#   "purpose": "Build the HTTPX client shared by metadata lookups and downloads",
#   "sections": [
#     {"id": "constants", "name": "Constants", "anchor": "CONST", "kind": "constants"},
#     {"id": "helpers", "name": "Client construction helpers", "anchor": "HELP", "kind": "helpers"},
#     {"id": "api", "name": "Public API", "anchor": "API", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""HTTPX client factory used by the build API client.

One client is created per run and owned by the caller (the CLI closes it when
the run ends, which also aborts a metadata request abandoned after its
deadline).  Responses are always streamed for downloads; nothing is cached.
"""

from __future__ import annotations

import logging
import ssl
from typing import Optional

import certifi
import httpx

from .settings import FetchSettings

LOGGER = logging.getLogger(__name__)

# --- Constants -----------------------------------------------------------------

HTTP_CONNECT_TIMEOUT = 5.0
HTTP_POOL_TIMEOUT = 5.0
MAX_CONNECTIONS = 4
MAX_KEEPALIVE_CONNECTIONS = 2
KEEPALIVE_EXPIRY = 5.0

# --- Client construction helpers ---------------------------------------------


def _build_ssl_context() -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.load_verify_locations(certifi.where())
    return context


def _timeout(settings: FetchSettings) -> httpx.Timeout:
    return httpx.Timeout(
        settings.http_timeout_sec,
        connect=min(HTTP_CONNECT_TIMEOUT, settings.http_timeout_sec),
        pool=HTTP_POOL_TIMEOUT,
    )


# --- Public API ----------------------------------------------------------------


def build_http_client(
    settings: FetchSettings,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Create the HTTPX client for one run.

    Args:
        settings: Run settings supplying the User-Agent and timeouts.
        transport: Optional transport override (``httpx.MockTransport`` in tests).

    Returns:
        A configured :class:`httpx.Client`; the caller must close it.
    """

    client_kwargs = {
        "headers": {"User-Agent": settings.user_agent},
        "timeout": _timeout(settings),
        "limits": httpx.Limits(
            max_connections=MAX_CONNECTIONS,
            max_keepalive_connections=MAX_KEEPALIVE_CONNECTIONS,
            keepalive_expiry=KEEPALIVE_EXPIRY,
        ),
        "follow_redirects": True,
    }
    if transport is not None:
        client = httpx.Client(transport=transport, **client_kwargs)
    else:
        client = httpx.Client(verify=_build_ssl_context(), **client_kwargs)

    LOGGER.debug(
        "HTTP client created",
        extra={
            "stage": "metadata",
            "timeout_sec": settings.http_timeout_sec,
            "mock_transport": transport is not None,
        },
    )
    return client


__all__ = ["build_http_client"]
