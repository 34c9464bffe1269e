"""Presence API errors raised by routers and converted by the app error handler."""

import inspect
from enum import Enum, IntEnum
from uuid import uuid4


class PresenceStatusCode(IntEnum):
    BAD_REQUEST = 400


class PresenceErrorCode(str, Enum):
    E_INTERNAL_ERROR = "E_INTERNAL_ERROR"
    E_MISSING_IDENTIFIER = "E_MISSING_IDENTIFIER"

    def __str__(self) -> str:
        return self.value


class PresenceError(Exception):
    """Request-level failure with an API error code and HTTP status.

    The caller location is captured at raise time so the handler can log where
    the error originated rather than where it was converted.
    """

    def __init__(
        self,
        errcode: PresenceErrorCode | str = PresenceErrorCode.E_INTERNAL_ERROR,
        errmesg: str | None = None,
        *,
        status_code: int = PresenceStatusCode.BAD_REQUEST,
    ):
        self.errcode = errcode.value if isinstance(errcode, PresenceErrorCode) else str(errcode)
        self.errmesg = errmesg or "We are sorry, an error occurred."
        self.erresid = uuid4().hex[:10]
        self.status_code = int(status_code)

        caller_frame = inspect.stack()[1]
        module = inspect.getmodule(caller_frame.frame)
        module_name = (
            module.__name__ if module and getattr(module, "__name__", None) else caller_frame.filename
        )
        self.caller_info = f"{module_name}:{caller_frame.function}:{caller_frame.lineno}"

        super().__init__(f"{self.errcode}: {self.errmesg}")
