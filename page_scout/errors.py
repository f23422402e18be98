# File: page_scout/errors.py
"""page_scout.errors: error taxonomy of the scan engine.

Only :class:`InjectionDenied`, :class:`ScanTimeout`, :class:`ExtractionFailure`
and :class:`ScanAlreadyPending` ever reach a one-shot caller.
:class:`StorageUnavailable` is logged and swallowed by the store adapter.
"""
from __future__ import annotations

from typing import Optional

__all__ = [
    "ScoutError",
    "InjectionDenied",
    "ScanTimeout",
    "ExtractionFailure",
    "StorageUnavailable",
    "ScanAlreadyPending",
    "HostError",
]


class ScoutError(Exception):
    """Base class; ``reason`` is the short text shown to the display layer."""

    default_reason = "Scan failed."

    def __init__(self, reason: Optional[str] = None) -> None:
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


class InjectionDenied(ScoutError):
    default_reason = "This page does not allow the extraction routine to be injected."


class ScanTimeout(ScoutError):
    default_reason = "Timeout: the page did not answer the scan."


class ExtractionFailure(ScoutError):
    default_reason = "The page markup could not be processed."


class StorageUnavailable(ScoutError):
    default_reason = "Storage tier unavailable."


class ScanAlreadyPending(ScoutError):
    default_reason = "A scan is already pending for this surface."


class HostError(Exception):
    """Raised by host platforms when a surface refuses injection."""
