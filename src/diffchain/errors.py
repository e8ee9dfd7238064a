"""Error taxonomy shared by every core component."""

from __future__ import annotations


class DiffchainError(Exception):
    """Base class for all errors raised by the diffchain core."""


class ValidationError(DiffchainError):
    """The request is incomplete or inconsistent; nothing was touched."""


class NotFoundError(DiffchainError):
    """A repository, branch, commit or file does not exist (or is inactive)."""


class AuthorizationError(DiffchainError):
    """The acting user may not perform the operation on this repository."""


class ChainIntegrityError(DiffchainError):
    """Stored history cannot be reconstructed.

    Raised for diff rows without a usable predecessor, malformed stored
    payloads and patches that fail to apply. Never repaired automatically.
    """


class TransientStoreError(DiffchainError):
    """The store failed to open or commit a transaction. Safe to retry."""


class ConflictError(TransientStoreError):
    """A concurrent writer appended to the same diff chain first."""
