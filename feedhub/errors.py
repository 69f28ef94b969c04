"""feedhub error hierarchy."""


class FeedHubError(Exception):
    """Base error for the acquisition pipeline."""


class ValidationError(FeedHubError):
    """A job spec is malformed. Raised before any connector or store activity."""


class ConfigurationError(FeedHubError):
    """No connector is registered for the platform, or it is not usable as configured."""


class SourceError(FeedHubError):
    """A connector call against a known platform failed (auth, network, parse, timeout)."""

    def __init__(self, message: str, platform: str | None = None) -> None:
        self.platform = platform
        super().__init__(message)


class PersistenceError(FeedHubError):
    """One item could not be written to the content store."""

    def __init__(self, platform: str, platform_id: str, reason: str) -> None:
        self.platform = platform
        self.platform_id = platform_id
        super().__init__(f"Failed to store {platform}/{platform_id}: {reason}")
