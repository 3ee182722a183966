"""Error taxonomy shared by all feeds."""


class FeedError(Exception):
    """Base class for feed errors."""


class FetchError(FeedError):
    """A source adapter failed to read its source.

    Transient: the caller logs it and tries again on the next trigger
    (or after a backoff delay).
    """

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"{source}: {message}")


class InvariantViolation(FeedError):
    """An event carries a value the feed state cannot represent."""


class SetupError(FeedError):
    """Configuration or environment is unusable; the feed cannot start."""
