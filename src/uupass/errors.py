"""
Error taxonomy for uupass.

Every failure raised by the core derives from UupassError and falls into
one of four groups: I/O, encoding, not-found, or invariant violation.
User cancellation is signalled with Interrupted, which is deliberately
not a UupassError so that callers cannot mistake it for a failure.
"""

from __future__ import annotations


class UupassError(Exception):
    """Base class for all uupass failures."""


class Interrupted(Exception):
    """The user cancelled the operation."""


# ---------------------------------------------------------------------------
# I/O (filesystem, child processes)
# ---------------------------------------------------------------------------


class StoreIOError(UupassError):
    """A filesystem or child-process operation failed."""


class StoreError(StoreIOError):
    """The secret-store command failed."""


class VcsError(StoreIOError):
    """A git command failed."""


# ---------------------------------------------------------------------------
# Encoding (bad bytes, bad text formats)
# ---------------------------------------------------------------------------


class EncodingError(UupassError):
    """Data could not be decoded or parsed."""


class IndexFormatError(EncodingError):
    """The index record contains a malformed line."""


class MalformedIdentifierError(EncodingError):
    """A record name does not carry a valid UUID."""


class DiffEncodingError(EncodingError):
    """git diff produced output that is not valid UTF-8."""


class DiffParseError(EncodingError):
    """git diff produced output that is not a valid unified diff."""


class BaselineFormatError(EncodingError):
    """The sync marker file does not hold two 40-character commit hashes."""


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class NotFoundError(UupassError):
    """Something that must exist could not be found."""


class NoIndexError(NotFoundError):
    """The index record does not exist. Run `uupass init` first."""

    def __init__(self, message: str = "Index file was not found") -> None:
        super().__init__(message)


class RecordNotFoundError(NotFoundError):
    """The secret store has no record with the requested name."""


class UnknownIdentifierError(NotFoundError):
    """The index has no path for the requested identifier."""


class UnknownPathError(NotFoundError):
    """The index has no identifier for the requested path."""


class BaselineNotFoundError(NotFoundError):
    """The sync marker file is missing. Run `uupass sync init` first."""


class SlaveEntryMissingError(NotFoundError):
    """A slave file that should be overwritten does not exist."""


class ManagedFolderNotFoundError(NotFoundError):
    """The uuid folder of the store does not exist."""


# ---------------------------------------------------------------------------
# Invariant violations
# ---------------------------------------------------------------------------


class InvariantViolation(UupassError):
    """A structural rule of the store or the sync protocol was broken."""


class EmptyEntryError(InvariantViolation):
    """A record has no password line."""


class EntryWithoutPathError(InvariantViolation):
    """An entry has no path where one is required."""


class DestinationExistsError(InvariantViolation):
    """A slave file already exists where a new one must be created."""


class IdentifierMismatchError(InvariantViolation):
    """A slave record declares a different identifier than the index."""


class PathMismatchError(InvariantViolation):
    """A slave record declares a different path than its location."""


class PathCollisionError(InvariantViolation):
    """The path is already mapped to another identifier."""


class DuplicateIdentifierError(InvariantViolation):
    """The identifier is already present in the index."""


class SyncSetupError(InvariantViolation):
    """The slave mirror cannot be initialized."""
