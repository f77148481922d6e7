from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status
from fastapi.responses import StreamingResponse

from app.api.v1.dependencies import get_platform, get_video_service, pagination
from app.core.errors import ConflictError, NotFoundError
from app.core.platform import Platform
from app.features.events.broadcaster import stream_events
from app.features.videos.schemas import ProcessingStatusOut, ReprocessOut, VideoList, VideoOut
from app.features.videos.services import VideoService

router = APIRouter(
    prefix="/videos",
    tags=["videos"],
    responses={404: {"description": "Not Found"}},
)


# -----------------------------
# List / detail
# -----------------------------
@router.get(
    "",
    summary="Lister les vidéos (plus récentes d'abord)",
    response_model=VideoList,
)
def list_videos(
    page: dict = Depends(pagination),
    owner_id: Optional[int] = Query(None),
    video_status: Optional[str] = Query(None, alias="status"),
    svc: VideoService = Depends(get_video_service),
):
    return svc.list(offset=page["offset"], limit=page["limit"], owner_id=owner_id, status=video_status)


@router.get(
    "/{video_id}",
    summary="Récupérer une vidéo",
    response_model=VideoOut,
)
def get_video(
    video_id: int = Path(..., ge=1),
    svc: VideoService = Depends(get_video_service),
):
    try:
        return svc.get(video_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")


@router.get(
    "/{video_id}/status",
    summary="Statut de traitement (vidéo + dernier job + étapes)",
    response_model=ProcessingStatusOut,
)
def get_status(
    video_id: int = Path(..., ge=1),
    svc: VideoService = Depends(get_video_service),
):
    try:
        return svc.get_status(video_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")


# -----------------------------
# Live events (SSE)
# -----------------------------
@router.get(
    "/{video_id}/events",
    summary="Suivre le traitement en direct (Server-Sent Events)",
    description="Pas de rejeu : interroger /status pour l'état courant avant de s'abonner.",
)
async def video_events(
    request: Request,
    video_id: int = Path(..., ge=1),
    platform: Platform = Depends(get_platform),
    svc: VideoService = Depends(get_video_service),
):
    try:
        svc.get(video_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    sub = platform.broadcaster.subscribe(video_id)
    return StreamingResponse(
        stream_events(
            platform.broadcaster,
            sub,
            keepalive=platform.settings.EVENTS_KEEPALIVE_SECONDS,
            is_disconnected=request.is_disconnected,
        ),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


# -----------------------------
# Reprocess / delete
# -----------------------------
@router.post(
    "/{video_id}/reprocess",
    summary="Relancer le pipeline de traitement",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ReprocessOut,
)
async def reprocess(
    video_id: int = Path(..., ge=1),
    svc: VideoService = Depends(get_video_service),
):
    try:
        return svc.reprocess(video_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.delete(
    "/{video_id}",
    summary="Supprimer une vidéo (fichiers + jobs + cache)",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        204: {"description": "Supprimée"},
        404: {"description": "Introuvable"},
        409: {"description": "En cours de traitement"},
    },
)
def delete_video(
    video_id: int = Path(..., ge=1),
    svc: VideoService = Depends(get_video_service),
):
    try:
        svc.delete(video_id)
        return None
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
