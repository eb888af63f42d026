"""Console error definitions for s3console."""


class ConsoleError(Exception):
    """A console error with code, message, and HTTP status.

    The message is a short static string that is safe to show to the
    console user. Underlying causes belong in the log, never here.

    Attributes:
        code: The error code string (e.g. "ParamMissing", "UpstreamFailed").
        message: Human-readable error description.
        http_status: The HTTP status code to return.
    """

    def __init__(self, code: str, message: str, http_status: int = 400) -> None:
        """Initialize the console error.

        Args:
            code: Error code.
            message: Error description.
            http_status: HTTP status code (default 400).
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.http_status = http_status


# -- Pre-defined errors --------------------------------------------------------


class ParamMissingError(ConsoleError):
    """A required field is absent from the request."""

    def __init__(self, message: str = "Required parameter missing") -> None:
        super().__init__(code="ParamMissing", message=message, http_status=400)


class ParamParseError(ConsoleError):
    """The request body is malformed or a field has the wrong type."""

    def __init__(self, message: str = "Request parameters are malformed") -> None:
        super().__init__(code="ParamParse", message=message, http_status=400)


class AuthLookupError(ConsoleError):
    """The auth service could not resolve credentials for the user."""

    def __init__(self, message: str = "Get s3 client failed") -> None:
        super().__init__(code="AuthLookupFailed", message=message, http_status=401)


class ObjectNotFoundError(ConsoleError):
    """The requested object does not exist in the store."""

    def __init__(self, message: str = "Object does not exist") -> None:
        super().__init__(code="NoSuchObject", message=message, http_status=404)


class UpstreamError(ConsoleError):
    """The object store call failed."""

    def __init__(self, message: str = "Object store request failed") -> None:
        super().__init__(code="UpstreamFailed", message=message, http_status=502)


class NotImplementedConsoleError(ConsoleError):
    """The requested console operation is not implemented."""

    def __init__(self, message: str = "Operation is not implemented") -> None:
        super().__init__(code="NotImplemented", message=message, http_status=501)


class InternalError(ConsoleError):
    """An unexpected server-side error occurred."""

    def __init__(self, message: str = "Internal error") -> None:
        super().__init__(code="InternalError", message=message, http_status=500)
