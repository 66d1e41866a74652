"""Farmgate backend package: authentication, order pipeline and live notifications."""

from __future__ import annotations

__all__: list[str] = []
