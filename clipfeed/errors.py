"""
Domain errors raised by the feed, promotion and messaging services.

Routers translate these into HTTP responses; services never build
HTTPExceptions themselves.
"""


class ClipfeedError(Exception):
    """Base class for all domain errors."""


class InvalidArgument(ClipfeedError):
    """Malformed input, e.g. a user trying to open a conversation with themselves."""


class NotFound(ClipfeedError):
    """The entity does not exist or the caller may not see it."""


class InsufficientCoins(InvalidArgument):
    """A promotion asked for more coins than the profile holds."""


class StorageError(ClipfeedError):
    """The store failed for a reason other than a uniqueness conflict."""


class ConversationConflict(ClipfeedError):
    """
    A conversation for this pair already exists (unique constraint fired).

    Raised by stores only. ConversationIdentity recovers from it with a single
    lookup, so callers never see it.
    """
