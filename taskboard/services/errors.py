from typing import Optional


class ExtractionError(RuntimeError):
    kind = "extraction_error"


class InvalidInput(ExtractionError):
    kind = "invalid_input"


class ConfigurationError(ExtractionError):
    kind = "configuration_error"


class UpstreamError(ExtractionError):
    kind = "upstream_error"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class UnparsableResponse(ExtractionError):
    """
    The model reply did not contain a usable JSON array.

    reason is "no_array" when no [...] span exists and "invalid_json" when
    the span was found but json.loads rejected it. raw_text is the reply
    exactly as received.
    """
    kind = "unparsable_response"

    def __init__(self, message: str, raw_text: str, reason: str = "no_array"):
        super().__init__(message)
        self.raw_text = raw_text
        self.reason = reason
