"""Error taxonomy shared by services and routes.

Each error carries the HTTP status it is rendered with, so routes never
translate exceptions by hand.
"""

from typing import Any

from shared.quota import QuotaDenied


class ServiceError(Exception):
    """Base class for errors rendered into the error envelope."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict[str, Any]:
        """Extra envelope fields beyond ``error``."""
        return {}


class ValidationError(ServiceError):
    """Malformed, missing or out-of-range input."""

    status_code = 400


class AuthenticationError(ServiceError):
    """No authenticated identity on the request."""

    status_code = 401


class QuotaExceededError(ServiceError):
    """A quota dimension would exceed the plan limit."""

    status_code = 403

    def __init__(self, denial: QuotaDenied, message: str | None = None):
        self.denial = denial
        super().__init__(
            message
            or (
                f"Usage limit reached for {denial.dimension.value}: "
                f"{_format_amount(denial.attempted)} requested, limit is {_format_amount(denial.limit)}"
            )
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "quota": {
                "dimension": self.denial.dimension.value,
                "attempted": self.denial.attempted,
                "limit": self.denial.limit,
            }
        }


class NotFoundError(ServiceError):
    """A record or artifact does not exist or is not owned by the caller."""

    status_code = 404


# Upstream statuses that describe the caller's request and are passed through
PASS_THROUGH_STATUSES = frozenset({400, 401, 403, 404, 422, 429})


class ProviderError(ServiceError):
    """An external generation API failed or was unreachable."""

    def __init__(
        self,
        provider: str,
        message: str,
        upstream_status: int | None = None,
        body: str | None = None,
    ):
        self.provider = provider
        self.upstream_status = upstream_status
        self.body = body
        if upstream_status in PASS_THROUGH_STATUSES:
            status_code = upstream_status
        elif upstream_status == 504:
            status_code = 504
        else:
            status_code = 502
        super().__init__(message, status_code=status_code)


class PersistenceError(ServiceError):
    """A record or quota write failed after artifacts were stored.

    ``cleanup_errors`` lists compensation steps that also failed; their
    text is part of the message so orphaned artifacts can be traced.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        cause: BaseException,
        cleanup_errors: list[str] | None = None,
    ):
        self.cause = cause
        self.cleanup_errors = list(cleanup_errors or [])
        if self.cleanup_errors:
            full = f"{message} (and cleanup also failed): {cause}; cleanup: {'; '.join(self.cleanup_errors)}"
        else:
            full = f"{message}: {cause}"
        super().__init__(full)


def _format_amount(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"
