"""Custom exceptions for Bucketwise."""


class BucketwiseError(Exception):
    """Base exception for all Bucketwise errors."""

    def __init__(self, message: str, *, details: dict[str, object] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(BucketwiseError):
    """Raised when process configuration is invalid."""


class ProviderConfigurationError(ConfigurationError):
    """Raised when the chat backend cannot be selected or constructed."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(
            f"Chat provider '{provider}' is not usable: {reason}",
            details={"provider": provider, "reason": reason},
        )


class ProviderError(BucketwiseError):
    """Raised when a chat backend fails while producing a reply."""


class TurnNotFoundError(BucketwiseError):
    """Raised when a chat turn does not exist."""

    def __init__(self, turn_id: str) -> None:
        super().__init__(f"Chat message not found: {turn_id}", details={"turn_id": turn_id})


class TurnNotExtractableError(BucketwiseError):
    """Raised when a chat turn cannot be copied into a bucket."""

    def __init__(self, turn_id: str, reason: str) -> None:
        super().__init__(
            f"Chat message {turn_id} cannot be extracted: {reason}",
            details={"turn_id": turn_id, "reason": reason},
        )
