"""Custom exceptions for the session and pairing engine."""


class MirrorBotError(Exception):
    """Base exception for bot errors."""

    pass


class ValidationError(MirrorBotError):
    """Raised when user input is malformed or out of range."""

    pass


class NotFoundError(MirrorBotError):
    """Raised when a referenced confession or profile does not exist."""

    pass


class RateLimitError(MirrorBotError):
    """Raised when a user hits a usage cap (admin contact)."""

    pass


class PersistenceError(MirrorBotError):
    """Raised when the database rejects a write or read."""

    pass


class InvalidReportTarget(MirrorBotError):
    """Raised when the reporter is not currently paired with the reported user."""

    def __init__(self, reporter_id: int, reported_id: int) -> None:
        super().__init__("Reporter is not paired with the reported user")
        self.reporter_id = reporter_id
        self.reported_id = reported_id
