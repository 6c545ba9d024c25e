"""Typed failures of the stream lifecycle.

Every error except `CompensationWarning` is fatal to a `start_stream` attempt and
is raised only after compensation has run. `CompensationWarning` records a
rollback step that could not be completed; it is logged and attached to the
fatal error, never raised.
"""

from streamcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode


class StreamError(AppError):
    """Base class for fatal stream lifecycle errors."""

    errcode: AppErrorCode = AppErrorCode.E_INTERNAL_ERROR
    http_status: HttpStatusCode = HttpStatusCode.INTERNAL_SERVER_ERROR

    def __init__(self, errmesg: str, stream_id: str | None = None):
        super().__init__(errcode=type(self).errcode, errmesg=errmesg, status_code=type(self).http_status)
        self.stream_id = stream_id
        self.compensation_warnings: list[CompensationWarning] = []


class ProvisioningError(StreamError):
    """Creating the remote broadcast or ingest stream failed."""

    errcode = AppErrorCode.E_PROVISIONING_FAILED
    http_status = HttpStatusCode.BAD_GATEWAY


class BindingError(StreamError):
    """Binding the broadcast to the ingest stream failed after both existed."""

    errcode = AppErrorCode.E_BINDING_FAILED
    http_status = HttpStatusCode.BAD_GATEWAY


class EncoderStartError(StreamError):
    """The encode process did not confirm startup, or the source file is missing."""

    errcode = AppErrorCode.E_ENCODER_START_FAILED


class EncoderRuntimeError(StreamError):
    """The encode process exited abnormally after confirming startup."""

    errcode = AppErrorCode.E_ENCODER_RUNTIME_FAILED

    def __init__(self, errmesg: str, stream_id: str | None = None, returncode: int | None = None):
        super().__init__(errmesg, stream_id=stream_id)
        self.returncode = returncode


class TransitionError(StreamError):
    """A broadcast lifecycle transition call failed."""

    errcode = AppErrorCode.E_TRANSITION_FAILED
    http_status = HttpStatusCode.BAD_GATEWAY


class CompensationWarning(UserWarning):
    """A best-effort rollback step failed."""

    def __init__(self, step: str, error: BaseException):
        super().__init__(f"{step}: {type(error).__name__}: {error}")
        self.step = step
        self.error = error


__all__ = [
    "BindingError",
    "CompensationWarning",
    "EncoderRuntimeError",
    "EncoderStartError",
    "ProvisioningError",
    "StreamError",
    "TransitionError",
]
