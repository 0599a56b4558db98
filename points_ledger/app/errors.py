"""
errors.py — AppError base class and error code registry.

Every error returned by the points ledger API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages (problem `detail`) are human-readable prose. They may be
    improved at any time.
  - Core ledger operations never raise WouldCorruptDataError at their
    caller. They return it inside a rejected Outcome (services/outcome.py);
    the route raises it so the global handler renders the problem document.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
            title: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error
        self.title       = title or _default_title(http_status)

    def to_problem(self) -> dict:
        """Serialises the error as an RFC 7807 problem details object."""
        payload = {
            "type":   str(self.http_status),
            "title":  self.title,
            "detail": self.message,
            "status": self.http_status,
            "code":   self.code,
        }
        if self.field is not None:
            payload["field"] = self.field
        return payload

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


class WouldCorruptDataError(AppError):
    """
    The single rejection kind of the ledger core (422).

    `operation` names the core operation that refused the change and ends up
    in the problem title; `message` is one of the CorruptionDetail strings.
    """

    def __init__(self, operation: str, detail: str) -> None:
        super().__init__(
            ErrorCode.WOULD_CORRUPT_DATA,
            detail,
            422,
            title=f"{operation} would corrupt data",
        )
        self.operation = operation


class OperationCancelled(Exception):
    """Raised at a store checkpoint when the caller's cancel event is set."""


# ── Error Code Registry ────────────────────────────────────────────────────
#
# IMPORTANT: these are the string values sent in the `code` member of the
# problem document. Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD      = "MISSING_FIELD"
    INVALID_FIELD      = "INVALID_FIELD"
    INVALID_JSON       = "INVALID_JSON"

    # ── Business Rule Violations (422) ────────────────────────────────────
    WOULD_CORRUPT_DATA = "WOULD_CORRUPT_DATA"

    # ── Routing (404 / 405) ───────────────────────────────────────────────
    NOT_FOUND          = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR     = "INTERNAL_ERROR"


class CorruptionDetail:
    """Detail messages distinguishing the WOULD_CORRUPT_DATA cases."""

    NEGATIVE_BALANCE = "The operation would result in a negative payer balance."
    NEGATIVE_SPEND   = "The number of points to spend cannot be negative."
    OVERSPEND        = "Cannot spend more points than the total available balance."


def _default_title(http_status: int) -> str:
    return {
        400: "Bad Request",
        404: "Not Found",
        405: "Method Not Allowed",
        422: "Unprocessable Entity",
        500: "Internal Server Error",
    }.get(http_status, "Error")
