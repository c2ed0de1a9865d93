"""
Domain exceptions.

Repositories translate storage errors into these; API routes map them
to HTTP responses.
"""


class CharchaError(Exception):
    """Base class for Charcha Manch domain errors."""


class NotFoundError(CharchaError):
    """A requested document does not exist."""


class AlreadyVotedError(CharchaError):
    """The user already submitted this vote or rating for the constituency."""

    def __init__(self, user_id: str, constituency_id: int, part: str = "vote"):
        self.user_id = user_id
        self.constituency_id = constituency_id
        self.part = part
        super().__init__(f"{part} already submitted for constituency {constituency_id}")


class InvalidRatingError(CharchaError):
    """Department ratings failed validation."""


class LedgerContentionError(CharchaError):
    """Score update kept losing optimistic concurrency races."""


class NagrikAllocationError(CharchaError):
    """No unique nagrik number could be claimed."""


class ConstituencyAlreadySetError(CharchaError):
    """A profile's constituency can only be chosen once."""


class InvalidConstituencyError(CharchaError):
    """Constituency id outside the reference dataset."""


# ----------------------------------------------------------------------------
# Storage-level errors raised by db.cosmos_session helpers
# ----------------------------------------------------------------------------


class DocumentConflictError(CharchaError):
    """Create-if-absent found an existing document with the same id."""


class PreconditionFailedError(CharchaError):
    """An etag-guarded write lost to a concurrent writer."""
