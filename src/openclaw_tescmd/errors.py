"""Exceptions raised inside the gateway and CLI layers.

These never cross :meth:`~openclaw_tescmd.dispatcher.Dispatcher.dispatch`;
the invokers translate them into :class:`~openclaw_tescmd.models.Failure`
outcomes.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for failures talking to the OpenClaw Gateway."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_type: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type


class StaleNodeError(GatewayError):
    """The gateway no longer recognises the targeted node as connected."""


class GatewayTransportError(GatewayError):
    """Network or HTTP failure that is not a stale-node condition."""


class CliError(Exception):
    """The ``tescmd`` binary exited non-zero or produced unusable output."""

    def __init__(self, message: str, *, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode
