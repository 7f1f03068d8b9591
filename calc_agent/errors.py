from typing import Optional


class AgentError(RuntimeError):
    def __init__(self, code: str, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class NetworkError(AgentError):
    """The coordinator could not be reached."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("COORDINATOR_UNREACHABLE", message, details)


class ProtocolError(AgentError):
    """The coordinator answered with a status other than 200."""

    def __init__(self, status_code: int, message: str, details: Optional[dict] = None):
        super().__init__("COORDINATOR_HTTP_ERROR", message, details)
        self.status_code = status_code


class FormatError(AgentError):
    """Malformed JSON, data URI or base64 payload."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("BAD_FORMAT", message, details)
