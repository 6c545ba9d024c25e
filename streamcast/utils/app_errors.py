"""Application error types shared by the domain and API layers."""

import inspect
from enum import Enum, IntEnum
from uuid import uuid4


class HttpStatusCode(IntEnum):
    OK = 200
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    PAYLOAD_TOO_LARGE = 413
    UNPROCESSABLE_ENTITY = 422
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502


class AppErrorCode(str, Enum):
    E_INTERNAL_ERROR = "E_INTERNAL_ERROR"
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_INVALID_PARAMS = "E_INVALID_PARAMS"

    # Identity
    E_AUTH_REQUIRED = "E_AUTH_REQUIRED"
    E_BAD_TOKEN = "E_BAD_TOKEN"
    E_OAUTH_NOT_CONFIGURED = "E_OAUTH_NOT_CONFIGURED"
    E_OAUTH_EXCHANGE_FAILED = "E_OAUTH_EXCHANGE_FAILED"

    # Uploads
    E_INVALID_FILE_TYPE = "E_INVALID_FILE_TYPE"
    E_FILE_TOO_LARGE = "E_FILE_TOO_LARGE"
    E_CLEANUP_FAILED = "E_CLEANUP_FAILED"

    # Stream lifecycle
    E_PROVISIONING_FAILED = "E_PROVISIONING_FAILED"
    E_BINDING_FAILED = "E_BINDING_FAILED"
    E_ENCODER_START_FAILED = "E_ENCODER_START_FAILED"
    E_ENCODER_RUNTIME_FAILED = "E_ENCODER_RUNTIME_FAILED"
    E_TRANSITION_FAILED = "E_TRANSITION_FAILED"

    # Remote platform
    E_YOUTUBE_API_ERROR = "E_YOUTUBE_API_ERROR"

    def __str__(self) -> str:
        return self.value


class AppError(Exception):
    """Error carrying an API error code, a user-facing message and an HTTP status.

    The caller location is captured at construction time so the exception
    handler can log where the error was raised, not where it was caught.
    """

    def __init__(
        self,
        errcode: AppErrorCode | str,
        errmesg: str,
        status_code: int = HttpStatusCode.BAD_REQUEST,
    ) -> None:
        super().__init__(errmesg)
        self.errcode = errcode.value if isinstance(errcode, Enum) else errcode
        self.errmesg = errmesg
        self.status_code = int(status_code)
        self.erresid = uuid4().hex[:10]
        self.caller_info = _capture_caller_info()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(errcode={self.errcode!r}, errmesg={self.errmesg!r})"


def _capture_caller_info() -> str:
    # Skip our own frame plus every AppError.__init__ in the subclass chain.
    for frame_info in inspect.stack()[2:]:
        if frame_info.function != "__init__":
            module = inspect.getmodule(frame_info.frame)
            module_name = (
                module.__name__ if module and getattr(module, "__name__", None) else frame_info.filename
            )
            return f"{module_name}:{frame_info.function}:{frame_info.lineno}"
    return "unknown"
