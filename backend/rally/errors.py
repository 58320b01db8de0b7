"""Typed failures raised by the attendance services.

Routers never see raw strings: every business rule violation is an
``AttendanceError`` carrying a closed ``AttendanceErrorCode``, and every
exhausted store retry is a ``TransientStoreError``.
"""
import enum


class AttendanceErrorCode(str, enum.Enum):
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    ALREADY_CONFIRMED = "ALREADY_CONFIRMED"
    WAITLIST_DISABLED = "WAITLIST_DISABLED"
    NOT_ATTENDING = "NOT_ATTENDING"
    ORGANIZER_CANNOT_LEAVE = "ORGANIZER_CANNOT_LEAVE"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    FEEDBACK_NOT_ELIGIBLE = "FEEDBACK_NOT_ELIGIBLE"
    CAPACITY_REACHED = "CAPACITY_REACHED"
    INVALID_FEEDBACK_RATING = "INVALID_FEEDBACK_RATING"
    TARGET_REQUIRED = "TARGET_REQUIRED"


HTTP_STATUS_BY_CODE = {
    AttendanceErrorCode.EVENT_NOT_FOUND: 404,
    AttendanceErrorCode.ALREADY_CONFIRMED: 409,
    AttendanceErrorCode.WAITLIST_DISABLED: 409,
    AttendanceErrorCode.NOT_ATTENDING: 409,
    AttendanceErrorCode.ORGANIZER_CANNOT_LEAVE: 403,
    AttendanceErrorCode.INVALID_TRANSITION: 409,
    AttendanceErrorCode.FEEDBACK_NOT_ELIGIBLE: 403,
    AttendanceErrorCode.CAPACITY_REACHED: 409,
    AttendanceErrorCode.INVALID_FEEDBACK_RATING: 422,
    AttendanceErrorCode.TARGET_REQUIRED: 400,
}


class AttendanceError(Exception):
    """A business rule rejected the requested transition."""

    def __init__(self, code: AttendanceErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_CODE.get(self.code, 400)

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message, "retryable": False}


class TransientStoreError(Exception):
    """The store kept failing after bounded retries; the caller may retry."""

    code = "TRANSIENT_FAILURE"

    def __init__(self, message: str = "Temporary storage failure, please retry"):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "retryable": True}
