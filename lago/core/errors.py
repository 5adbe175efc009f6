"""
Error taxonomy for the analysis pipeline.

The orchestrator only uses these types to decide whether to recover or
propagate; the HTTP layer maps them to status codes.
"""


class LagoError(Exception):
    """Base class for all analysis errors."""


class TextValidationError(LagoError):
    """Input text is missing or empty."""


class ModelError(LagoError):
    """A call to a hosted model failed."""

    def __init__(self, model: str, message: str):
        super().__init__(f"{model}: {message}")
        self.model = model


class ModelTimeoutError(ModelError):
    """The call did not settle within its wall-clock budget."""

    def __init__(self, model: str, timeout: float):
        super().__init__(model, f"timed out after {timeout:g}s")
        self.timeout = timeout


class MalformedResponseError(ModelError):
    """The model answered, but not with the output we expected."""


class ModelServiceError(ModelError):
    """Network or HTTP failure talking to the model provider."""

    def __init__(self, model: str, message: str, status_code: int | None = None):
        super().__init__(model, message)
        self.status_code = status_code
