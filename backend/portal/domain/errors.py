# backend/portal/domain/errors.py
from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    # not-found
    NOT_FOUND = "NOT_FOUND"
    NO_TENANCY = "NO_TENANCY"

    # state-conflict
    ALREADY_EXISTS = "ALREADY_EXISTS"
    CHECKLIST_FINALIZED = "CHECKLIST_FINALIZED"
    ALREADY_FINALIZED = "ALREADY_FINALIZED"
    NOT_FINALIZED = "NOT_FINALIZED"
    INCOMPLETE_ITEMS = "INCOMPLETE_ITEMS"
    NO_MOVE_OUT_DATE = "NO_MOVE_OUT_DATE"
    INVALID_STATE = "INVALID_STATE"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"

    # authorization / precondition
    NOT_ALLOWED = "NOT_ALLOWED"
    INSURANCE_NOT_VALID = "INSURANCE_NOT_VALID"

    # validation
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_FILE = "INVALID_FILE"
    NOT_TENANT = "NOT_TENANT"


class PortalError(Exception):
    """
    Base class for every expected, caller-facing failure.

    Services raise these; routers never catch them. The app-level handler in
    main.py renders `{"error": {"code": ..., "message": ..., **details}}` with
    `status_code`, so UIs can branch on `code` instead of parsing messages.
    """

    status_code: int = 400

    def __init__(self, code: ErrorCode, message: str, *, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = dict(details or {})

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"code": self.code.value, "message": self.message}
        out.update(self.details)
        return out


class NotFoundError(PortalError):
    status_code = 404

    def __init__(self, message: str, *, code: ErrorCode = ErrorCode.NOT_FOUND) -> None:
        super().__init__(code, message)


class StateConflictError(PortalError):
    status_code = 409


class AuthorizationError(PortalError):
    status_code = 403


class PreconditionError(PortalError):
    # the action is permitted in principle, but the caller's data doesn't allow it yet
    status_code = 400


class InputValidationError(PortalError):
    status_code = 400

    def __init__(self, message: str, *, code: ErrorCode = ErrorCode.VALIDATION_ERROR) -> None:
        super().__init__(code, message)


def parse_enum(enum_cls: type[Enum], value: Any, *, field: str) -> Any:
    """enum_cls(value), reported as VALIDATION_ERROR instead of a bare ValueError."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(str(m.value) for m in enum_cls)
        raise InputValidationError(f"Invalid {field}: {value!r} (expected one of: {allowed})") from None
