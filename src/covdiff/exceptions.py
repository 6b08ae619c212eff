class CovdiffException(Exception):
    pass


class AuthenticationError(CovdiffException):
    pass


class RateLimitError(CovdiffException):
    def __init__(self, reset_time: int | None = None, *args: object) -> None:
        super().__init__(*args)
        self.reset_time = reset_time


class ResourceNotFoundError(CovdiffException):
    pass


class APIError(CovdiffException):
    def __init__(
        self, status_code: int | None = None, message: str = "", *args: object
    ) -> None:
        super().__init__(message, *args)
        self.status_code = status_code
        self.message = message


class ConfigurationError(CovdiffException):
    pass


class SecurityError(CovdiffException):
    pass


class ValidationError(CovdiffException):
    pass


class InvalidNumberError(ValidationError):
    """A percentage or count was NaN or infinite."""


class MalformedCoverageError(CovdiffException):
    def __init__(self, message: str = "", source: str | None = None) -> None:
        super().__init__(f"{source}: {message}" if source else message)
        self.source = source


class NetworkError(CovdiffException):
    pass


class TimeoutError(CovdiffException):
    pass
