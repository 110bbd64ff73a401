"""
Layout Engine Kernel — Exceptions

Most failures in the kernel are not exceptions: mutation operations and the
command processor return rejections instead of raising. The classes here
cover construction-time validation, snapshot parsing, and the IO boundary.
"""

from __future__ import annotations


class LayoutEngineError(Exception):
    """Base class for every error raised by the layout engine."""


class SlotValidationError(LayoutEngineError, ValueError):
    """A slot was constructed with fields that break its type's contract."""


class SnapshotParseError(LayoutEngineError):
    """A stored payload could not be turned into a Snapshot."""


class PersistenceError(LayoutEngineError):
    """A draft save or publish call against the store failed."""


class ConfigurationNotFound(LayoutEngineError):
    """The store has no configuration with the requested id."""


class UnknownPageType(LayoutEngineError):
    """No default template is registered for the page type."""
