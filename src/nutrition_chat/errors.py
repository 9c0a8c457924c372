"""Error taxonomy shared by the server and the client."""


class NutritionChatError(Exception):
    """Base class for all expected application failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(NutritionChatError):
    """Input has the wrong shape, size or type."""


class ProcessingError(NutritionChatError):
    """Uploaded bytes could not be decoded or re-encoded as an image."""


class UpstreamError(NutritionChatError):
    """The completion provider failed or returned something unusable."""


class UpstreamEmptyError(UpstreamError):
    """The model returned no content."""


class UpstreamFormatError(UpstreamError):
    """The model reply could not be parsed into the expected structure."""


class NetworkError(UpstreamError):
    """A remote service could not be reached."""


class UpstreamTimeoutError(UpstreamError):
    """A remote call did not finish within the configured timeout."""


class ApiError(NutritionChatError):
    """The nutrition chat server answered with an error envelope."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
