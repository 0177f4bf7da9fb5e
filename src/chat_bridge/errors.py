"""Package specific exception hierarchy."""


class ChatBridgeError(Exception):
    """Base exception for chat_bridge package."""


class InvalidRequestError(ChatBridgeError, ValueError):
    """Raised when the caller passes an unusable message sequence."""


class RequestCancelledError(ChatBridgeError):
    """Raised when a single-shot request is cancelled by the caller."""

    def __init__(self) -> None:
        super().__init__("Request was cancelled.")


class UnsupportedFeatureError(ChatBridgeError):
    """Raised when a requested feature is unsupported by a backend."""

    def __init__(self, feature: str) -> None:
        super().__init__(f"Feature '{feature}' is not supported.")


class BackendError(ChatBridgeError):
    """Represents backend-specific HTTP or API errors."""

    def __init__(self, backend: str, message: str, status_code: int | None = None) -> None:
        suffix = f" (status {status_code})" if status_code is not None else ""
        super().__init__(f"{backend}: {message}{suffix}")
        self.backend = backend
        self.status_code = status_code


# The errors below are recovered inside ChatClient. They only reach the
# outside world through the diagnostics hook.


class CapabilityUnavailableError(ChatBridgeError):
    """The command-execution surface could not be resolved."""


class PayloadBuildError(ChatBridgeError):
    """The backend-native request could not be built from the JSON payload."""


class EmptyResultError(ChatBridgeError):
    """A single-shot command returned nothing usable."""


class ProducerError(ChatBridgeError):
    """A callback-driven stream producer failed before completing."""
