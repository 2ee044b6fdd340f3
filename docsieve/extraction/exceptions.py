class ExtractionError(Exception):
    """Base exception for extraction adapters."""


class AdapterError(ExtractionError):
    """Raised by an extraction adapter call.

    ``retryable`` tells the retry controller whether another attempt can help
    (timeouts, rate limits, provider 5xx) or not (bad input, auth failures).
    """

    def __init__(self, message: str, *, code: str, retryable: bool) -> None:
        super().__init__(message)
        self.code = code
        self.retryable = retryable

    def __repr__(self) -> str:
        return (
            f"AdapterError(code={self.code!r}, retryable={self.retryable}, "
            f"message={str(self)!r})"
        )


class PromptLoadError(ExtractionError):
    """Raised when a bundled or custom prompt file cannot be read."""
