"""Exceptions raised by tracker operations. Messages are shown to the user as-is."""


class TrackerError(ValueError):
    """Invalid input for a tracker operation (mapped to HTTP 400)."""


class NotFoundError(TrackerError):
    """A day, food, favourite or other record does not exist (mapped to HTTP 404)."""


class ImportFailedError(TrackerError):
    """An import file could not be parsed."""

    def __init__(self, message: str = "Import failed: invalid JSON file") -> None:
        super().__init__(message)
