"""HTTP client for the OpenClaw Gateway tool-invocation endpoint.

Every call is a ``POST /tools/invoke`` with a ``{tool, action, args}``
body.  The gateway answers with an envelope::

    {"ok": bool,
     "result"?: {"content": [{"type": "text", "text": str}], "details"?: any},
     "error"?:  {"type": str, "message": str}}

Transport failures (connection errors, timeouts, non-2xx responses) are
translated into :class:`~openclaw_tescmd.errors.GatewayError` subclasses
by :func:`classify_transport_error`, the only place that knows how a
stale node is recognised.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from openclaw_tescmd.errors import GatewayError, GatewayTransportError, StaleNodeError

if TYPE_CHECKING:
    from openclaw_tescmd.config import ConnectionConfig

logger = logging.getLogger(__name__)

INVOKE_PATH = "/tools/invoke"
DEFAULT_TIMEOUT = 30.0

# Structured codes some gateway builds send in ``error.type``.
STALE_NODE_ERROR_TYPES = frozenset({"NODE_NOT_FOUND", "NODE_OFFLINE", "NODE_DISCONNECTED"})

# Compatibility shim for gateways that only report free text.
_STALE_NODE_MARKERS = ("node not found", "offline")


def is_stale_node_error(message: str, error_type: str | None = None) -> bool:
    """Return ``True`` if an error describes a node the gateway no longer knows."""
    if error_type and error_type.upper() in STALE_NODE_ERROR_TYPES:
        return True
    lowered = message.lower()
    return any(marker in lowered for marker in _STALE_NODE_MARKERS)


def classify_transport_error(
    message: str,
    *,
    status_code: int | None = None,
    error_type: str | None = None,
) -> GatewayError:
    """Map a transport-level failure onto :class:`StaleNodeError` or
    :class:`GatewayTransportError`."""
    cls: type[GatewayError] = (
        StaleNodeError if is_stale_node_error(message, error_type) else GatewayTransportError
    )
    return cls(message, status_code=status_code, error_type=error_type)


def extract_error(envelope: dict[str, Any]) -> tuple[str | None, str | None]:
    """Return ``(error_type, message)`` from an envelope's ``error`` field."""
    error = envelope.get("error")
    if isinstance(error, dict):
        error_type = error.get("type")
        message = error.get("message")
        return (
            str(error_type) if error_type else None,
            str(message) if message else None,
        )
    if isinstance(error, str) and error:
        return None, error
    return None, None


def normalize_result(envelope: dict[str, Any]) -> Any:
    """Collapse the heterogeneous ``result`` payload into one value.

    Preference order: ``result.details`` as-is, then
    ``result.content[0].text`` parsed as JSON, then that text verbatim.
    Returns ``None`` when the envelope carries no result.
    """
    result = envelope.get("result")
    if not isinstance(result, dict):
        return result

    details = result.get("details")
    if details is not None:
        return details

    content = result.get("content")
    if not isinstance(content, list) or not content:
        return None
    first = content[0]
    text = first.get("text") if isinstance(first, dict) else None
    if not isinstance(text, str):
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


class GatewayClient:
    """Thin async wrapper around ``POST /tools/invoke``.

    The underlying :class:`httpx.AsyncClient` is created on first use and
    reused until :meth:`close`.
    """

    def __init__(self, config: ConnectionConfig, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._config = config
        self._timeout = timeout
        self._http: httpx.AsyncClient | None = None

    @property
    def url(self) -> str:
        return f"{self._config.base_url}{INVOKE_PATH}"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._config.token:
            headers["Authorization"] = f"Bearer {self._config.token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout)
        return self._http

    async def call_tool(
        self,
        tool: str,
        action: str,
        args: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Invoke a gateway tool and return the decoded response envelope.

        Raises :class:`StaleNodeError` or :class:`GatewayTransportError`
        on transport failure.  An ``ok: false`` envelope is *returned*,
        not raised; interpreting it is the caller's job.
        """
        body = {"tool": tool, "action": action, "args": args or {}}
        logger.debug("Gateway call: %s.%s -> %s", tool, action, self.url)

        try:
            resp = await self._client().post(self.url, json=body, headers=self._headers())
        except httpx.TimeoutException as exc:
            raise GatewayTransportError(
                f"Gateway request timed out after {self._timeout:.0f}s: {exc}"
            ) from exc
        except httpx.HTTPError as exc:
            raise classify_transport_error(
                f"Gateway request to {self.url} failed: {exc}"
            ) from exc

        if resp.status_code >= 400:
            error_type, message = None, None
            try:
                payload = resp.json()
            except ValueError:
                payload = None
            if isinstance(payload, dict):
                error_type, message = extract_error(payload)
            raise classify_transport_error(
                message or f"Gateway returned HTTP {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
                error_type=error_type,
            )

        try:
            envelope = resp.json()
        except ValueError as exc:
            raise GatewayTransportError(
                f"Gateway returned non-JSON response: {resp.text[:200]}",
                status_code=resp.status_code,
            ) from exc
        if not isinstance(envelope, dict):
            raise GatewayTransportError(
                "Gateway returned an unexpected response shape", status_code=resp.status_code
            )
        return envelope

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> GatewayClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
