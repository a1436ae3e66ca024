class TracerError(Exception):
    pass


class DataSourceError(TracerError):
    pass


class RateLimitError(DataSourceError):
    pass


class LookupCancelledError(TracerError):
    pass


class TraceTooLongError(TracerError):
    def __init__(self, message: str = "trace is too long") -> None:
        super().__init__(message)


class TraceDecodeError(TracerError, ValueError):
    pass


class AccountIDParseError(TraceDecodeError):
    pass
