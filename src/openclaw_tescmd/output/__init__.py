"""Output formatting: Rich for terminals, JSON envelopes for pipes."""

from __future__ import annotations

from openclaw_tescmd.output.formatter import OutputFormatter

__all__ = ["OutputFormatter"]
