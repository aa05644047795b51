"""Capture session scheduling: debounce, single-flight creation and saving."""

from __future__ import annotations

from .context import CaptureContext, CaptureSettings, SessionKey, clean_link
from .debounce import Debouncer
from .session import CaptureSession, capture_signature
from .single_flight import SingleFlight

__all__ = [
    "CaptureContext",
    "CaptureSession",
    "CaptureSettings",
    "Debouncer",
    "SessionKey",
    "SingleFlight",
    "capture_signature",
    "clean_link",
]
