class GuestbookError(Exception):
    """Base class for errors raised by the guestbook service."""


class DatabaseUnavailableError(GuestbookError):
    """The backing store could not be reached at startup."""


class EntryStoreError(GuestbookError):
    """A query against the entries table failed."""
