"""Error taxonomy for pool and dispatch operations.

Every error a pool or dispatch operation can surface derives from
`SubagentError`. Errors that describe a bad argument also derive from the
matching builtin so callers can catch either.
"""

from __future__ import annotations


class SubagentError(Exception):
    """Base class for subagent failures."""


class NoAvailableSlotError(SubagentError):
    """Every provisioned slot is locked (or none exist)."""


class EmptyPoolError(SubagentError):
    """The pool root holds no provisioned slots."""


class SlotNotFoundError(SubagentError, FileNotFoundError):
    """A named slot, or the pool root itself, does not exist."""


class InvalidTemplateError(SubagentError, ValueError):
    """Workspace template is not a well-formed document."""


class MissingFoldersError(InvalidTemplateError):
    """Workspace template has no `folders` entry."""


class FoldersNotArrayError(InvalidTemplateError):
    """Workspace template `folders` is not a list."""


class TemplateNotFoundError(SubagentError, FileNotFoundError):
    pass


class TemplateIsDirectoryError(SubagentError, IsADirectoryError):
    pass


class PromptFileError(SubagentError, FileNotFoundError):
    pass


class AttachmentNotFoundError(SubagentError, FileNotFoundError):
    pass


class PreparationFailedError(SubagentError):
    """I/O failure while preparing a claimed slot. The slot stays locked."""


class LaunchFailedError(SubagentError):
    """The host process could not be spawned or instructed."""


class ResponseUnreadableError(SubagentError):
    """Response file exists but could not be read. The slot stays locked."""


class HostReadinessTimeout(SubagentError, TimeoutError):
    """Liveness marker did not appear in time. Downgraded to a warning."""
