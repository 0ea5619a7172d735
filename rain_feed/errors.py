"""
Exceptions raised by the Rain feed.

Each carries the HTTP status the API answers with.
"""


class FeedError(Exception):
    """Base class for errors the caller can act on."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FeedError):
    """Malformed input, e.g. a rating outside 1..5."""

    status_code = 400


class NotFoundError(FeedError):
    """The object does not exist or does not belong to the caller."""

    status_code = 404


class InvalidCursorError(NotFoundError):
    """A feed item id that is not in the caller's Feed Log."""

    status_code = 400


class NotShownError(FeedError):
    """A chunk was rated before it was ever shown."""

    status_code = 400


class ConflictError(FeedError):
    """The chunk has already been rated."""

    status_code = 409


class UpstreamError(FeedError):
    """An external service failed or timed out.

    Only surfaced where no safe default exists.
    """

    status_code = 500


class InvalidTransition(FeedError):
    """A lifecycle transition that is not in the transition table."""

    status_code = 400
