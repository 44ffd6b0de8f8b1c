class ExpiryAlertError(Exception):
    """Base class for errors that abort a daily check run."""


class ConfigurationMissing(ExpiryAlertError):
    """A required setting is absent or unusable. Raised before any read or send."""


class SourceReadFailure(ExpiryAlertError):
    """One of the database snapshots could not be fetched."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to read '{source}' snapshot: {reason}")
