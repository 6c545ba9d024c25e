from ._compensation import CompensationCoordinator, RollbackList
from ._encoder import EncodeHandle, EncoderProcessManager, FFmpegCommand
from ._events import (
    EncodeEnded,
    EncodeEventChannel,
    EncodeFailed,
    EncodeProgress,
    EncodeStarted,
)
from ._provisioner import ProvisionedPair, ResourceProvisioner
from ._registry import SessionRegistry
from ._transitions import TransitionOrchestrator, TransitionPacing
from .stream_domain import StreamService
from .stream_errors import (
    BindingError,
    CompensationWarning,
    EncoderRuntimeError,
    EncoderStartError,
    ProvisioningError,
    StreamError,
    TransitionError,
)
from .stream_models import StartStreamResult
from .stream_state_machine import StreamStateMachine

__all__ = [
    "BindingError",
    "CompensationCoordinator",
    "CompensationWarning",
    "EncodeEnded",
    "EncodeEventChannel",
    "EncodeFailed",
    "EncodeHandle",
    "EncodeProgress",
    "EncodeStarted",
    "EncoderProcessManager",
    "EncoderRuntimeError",
    "EncoderStartError",
    "FFmpegCommand",
    "ProvisionedPair",
    "ProvisioningError",
    "ResourceProvisioner",
    "RollbackList",
    "SessionRegistry",
    "StartStreamResult",
    "StreamError",
    "StreamService",
    "StreamStateMachine",
    "TransitionError",
    "TransitionOrchestrator",
    "TransitionPacing",
]
