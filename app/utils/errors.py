from typing import Iterable, Optional


class IngestionError(Exception):
    """
    Reportable failure of an ingestion run.

    `message` is safe to show to the end user, `detail` keeps the original
    error string for diagnostics. `status_code` is the HTTP status routes
    answer with.
    """

    code = "internal"
    status_code = 500

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "detail": self.detail}


class MissingParametersError(IngestionError):
    code = "invalid-argument"
    status_code = 400

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required parameters: {', '.join(self.missing)}.")


class UpstreamAuthError(IngestionError):
    code = "permission-denied"
    status_code = 502

    def __init__(self, message: str, detail: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message, detail)
        self.reason = reason


class UpstreamBadRequestError(IngestionError):
    code = "failed-precondition"
    status_code = 502


class UpstreamTransportError(IngestionError):
    code = "unavailable"
    status_code = 502


class MissingColumnsError(IngestionError):
    code = "data-loss"
    status_code = 502

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(
            f"Analytics response is missing required column(s): {', '.join(self.missing)}"
        )


class TimeSeriesWriteError(IngestionError):
    code = "aborted"


class AccountLimitError(Exception):
    """Connecting another account would exceed the user's tier limits."""
    status_code = 403


class PremiumRequiredError(AccountLimitError):
    """The platform is not available on the user's subscription tier."""
    status_code = 402
