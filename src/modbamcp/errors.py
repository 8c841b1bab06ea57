"""Exception types raised by modbamcp operations.

Every failure surfaces as a ``ModBamError``. Its two branches let callers tell
infrastructure faults (``TaskJoinError``: the background task did not run to
completion) apart from well-formed rejections (``OperationError`` and its
subclasses: bad options, unreadable input, engine failures, malformed output).
"""

from __future__ import annotations


class ModBamError(Exception):
    """Base class for every error raised by a modbamcp operation."""


class TaskJoinError(ModBamError):
    """The background task failed for reasons unrelated to the request."""


class OperationError(ModBamError):
    """An operation ran and rejected its input or failed on it."""


class InvalidOptionsError(OperationError, ValueError):
    """An option is malformed or out of range. Raised before any I/O."""


class ConfigBuildError(OperationError):
    """Options validated but do not form a consistent configuration."""


class BamOpenError(OperationError):
    """The alignment source could not be opened or fetched from."""


class EngineError(OperationError):
    """The analysis engine failed while processing records."""


class OutputFormatError(OperationError):
    """Engine output could not be decoded or parsed."""
