"""Streamable HTTP transport for the MCP server.

The HTTP app is wrapped in a pure ASGI gate (not BaseHTTPMiddleware, which
would buffer SSE responses) that rejects, in order:

1. requests without the expected bearer key, when auth is enabled (401);
2. browser requests from a non-localhost Origin, which blocks DNS rebinding (403);
3. requests announcing an MCP protocol version we do not speak (400).
"""

from __future__ import annotations

import re
import secrets
from typing import TYPE_CHECKING

import structlog
import uvicorn
from starlette.datastructures import Headers
from starlette.responses import Response

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP
    from starlette.types import ASGIApp, Receive, Scope, Send

    from pagescope.config import Settings

log = structlog.get_logger()

SUPPORTED_PROTOCOL_VERSIONS: frozenset[str] = frozenset({"2025-11-25", "2025-06-18", "2025-03-26"})
_LOCALHOST_ORIGIN = re.compile(r"^https?://(localhost|127\.0\.0\.1|\[::1\])(:\d+)?$")


def _rejection(headers: Headers, *, auth_key: str | None) -> Response | None:
    """Return the response that rejects this request, or None to let it through."""
    if auth_key is not None:
        scheme, _, token = headers.get("authorization", "").partition(" ")
        if scheme != "Bearer" or not secrets.compare_digest(token, auth_key):
            return Response("Unauthorized", status_code=401)

    origin = headers.get("origin", "")
    if origin and not _LOCALHOST_ORIGIN.match(origin):
        return Response("Forbidden", status_code=403)

    proto_version = headers.get("mcp-protocol-version", "")
    if proto_version and proto_version not in SUPPORTED_PROTOCOL_VERSIONS:
        return Response(f"Unsupported protocol version: {proto_version}", status_code=400)

    return None


class MCPSecurityMiddleware:
    """ASGI gate applying the bearer-key, origin and protocol-version checks."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        auth_enabled: bool,
        auth_key: str | None = None,
    ) -> None:
        if auth_enabled and not auth_key:
            raise ValueError("auth_key is required when auth_enabled is True")
        self.app = app
        self.auth_key = auth_key if auth_enabled else None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            rejection = _rejection(Headers(scope=scope), auth_key=self.auth_key)
            if rejection is not None:
                await rejection(scope, receive, send)
                return

        await self.app(scope, receive, send)


def run_http_server(mcp: FastMCP, settings: Settings) -> None:
    """Serve *mcp* over Streamable HTTP until interrupted."""
    http_log = log.bind(transport="http")

    auth_key: str | None = None
    if settings.server.auth_enabled:
        auth_key = settings.server.auth_key or secrets.token_urlsafe(32)
        if not settings.server.auth_key:
            http_log.warning("http_auth_key_auto_generated", auth_key=auth_key)
    else:
        http_log.warning("http_auth_disabled")

    secured_app = MCPSecurityMiddleware(
        mcp.streamable_http_app(),
        auth_enabled=settings.server.auth_enabled,
        auth_key=auth_key,
    )

    uvicorn.run(
        secured_app,
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # structlog owns logging
    )
