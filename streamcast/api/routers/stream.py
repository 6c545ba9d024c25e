from fastapi import APIRouter, Depends, File, Form, UploadFile

from streamcast.api.dependency import (
    CurrentAuth,
    get_stream_service,
    get_upload_policy,
)
from streamcast.api.schemas.base import ApiOut
from streamcast.api.schemas.stream import (
    CleanupOut,
    StartStreamOut,
    StopStreamOut,
    StreamStatusOut,
)
from streamcast.api.uploads import UploadPolicy, save_upload
from streamcast.domain.live.stream import StreamService
from streamcast.schemas import PrivacyStatus
from streamcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

router = APIRouter(tags=["stream"])


@router.post("/start-stream")
async def start_stream(
    auth: CurrentAuth,
    video: UploadFile | None = File(None, description="MP4, AVI or MKV file, max 50MB"),
    title: str = Form(""),
    privacy: PrivacyStatus = Form(PrivacyStatus.PUBLIC),
    service: StreamService = Depends(get_stream_service),
    policy: UploadPolicy = Depends(get_upload_policy),
) -> ApiOut[StartStreamOut]:
    """Upload a video and stream it live to the caller's YouTube channel.

    Returns once the broadcast is live; the video keeps looping until stopped.
    """
    if video is None:
        raise AppError(
            errcode=AppErrorCode.E_INVALID_PARAMS,
            errmesg="No video file uploaded",
            status_code=HttpStatusCode.BAD_REQUEST,
        )

    media_path = await save_upload(video, policy)
    result = await service.start_stream(title, media_path, auth, privacy=privacy)

    return ApiOut[StartStreamOut](
        results=StartStreamOut(broadcast_url=result.broadcast_url, stream_id=result.stream_id)
    )


@router.post("/stop-stream/{stream_id}")
async def stop_stream(
    stream_id: str,
    auth: CurrentAuth,
    service: StreamService = Depends(get_stream_service),
) -> ApiOut[StopStreamOut]:
    stopped = await service.stop_stream(stream_id)
    return ApiOut[StopStreamOut](
        results=StopStreamOut(
            stopped=stopped,
            message="Stream stopped" if stopped else "Stream not found",
        )
    )


@router.get("/stream/{stream_id}/status")
async def stream_status(
    stream_id: str,
    auth: CurrentAuth,
    service: StreamService = Depends(get_stream_service),
) -> ApiOut[StreamStatusOut]:
    return ApiOut[StreamStatusOut](results=StreamStatusOut(is_streaming=service.is_streaming(stream_id)))


@router.post("/cleanup")
async def cleanup(
    auth: CurrentAuth,
    service: StreamService = Depends(get_stream_service),
) -> ApiOut[CleanupOut]:
    """Delete every uploaded file. Do not call while streams are running."""
    removed = service.cleanup_uploads()
    return ApiOut[CleanupOut](results=CleanupOut(removed=removed))
