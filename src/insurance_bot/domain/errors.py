"""Exceptions raised by the insurance bot."""


class InsuranceBotError(Exception):
    """Base class for all bot errors."""


class ConfigurationError(InsuranceBotError):
    """Raised when a required credential or model id is missing."""


class InferenceError(InsuranceBotError):
    """Raised when the document extraction backend returns an error."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SubmissionFailed(InferenceError):
    """The enqueue request failed or returned a malformed job descriptor."""


class PollingFailed(InferenceError):
    """A poll request returned a status outside the accepted set."""


class FetchFailed(InferenceError):
    """The result request failed or returned a non-JSON body."""


class PollingTimeout(InferenceError):
    """Polling ran out of attempts before a result URL appeared."""

    def __init__(self, attempts: int):
        super().__init__(
            f"Extraction result was not ready after {attempts} polling attempts"
        )
        self.attempts = attempts


class TextGenerationFailed(InsuranceBotError):
    """Raised when the text generation backend errors or returns nothing."""


class FileDownloadError(InsuranceBotError):
    """Raised when a Telegram file cannot be downloaded."""
