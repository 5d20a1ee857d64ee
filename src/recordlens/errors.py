"""Exception types raised by the RecordLens engines."""

from __future__ import annotations


class RecordLensError(Exception):
    """Base class for errors raised by RecordLens operations."""


class ContentValidityError(RecordLensError):
    """File content is neither valid line-delimited data nor a JSON array."""


class DeliveryError(RecordLensError):
    """A batch could not be delivered because the receiver went away."""
