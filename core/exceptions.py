"""Exception types raised by the HandsOff core."""

from __future__ import annotations


class HandsOffError(Exception):
    """Base class for HandsOff errors."""


class ProviderUnavailableError(HandsOffError, RuntimeError):
    """A landmark provider could not be initialized. Fatal for the session."""


class FrameDecodeError(HandsOffError, ValueError):
    """A raw frame could not be decoded. The frame is skipped."""


class CameraUnavailableError(HandsOffError, RuntimeError):
    """The camera device could not be opened."""
