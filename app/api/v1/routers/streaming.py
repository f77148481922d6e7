from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Path, Query, Response, status
from fastapi.responses import StreamingResponse

from app.api.v1.dependencies import get_platform, get_streaming_service
from app.core.errors import (
    NotFoundError,
    NotReadyError,
    RangeNotSatisfiableError,
    SensitiveContentError,
    ValidationError,
)
from app.core.platform import Platform
from app.features.streaming.schemas import ManifestOut
from app.features.streaming.services import StreamingService

router = APIRouter(
    prefix="/stream",
    tags=["stream"],
    responses={404: {"description": "Not Found"}},
)

_PLAYBACK_RESPONSES = {
    400: {"description": "Vidéo pas encore prête"},
    403: {"description": "Contenu signalé, validation admin requise"},
}


# -------- Helpers --------

def _playback_error(e: Exception) -> HTTPException:
    if isinstance(e, SensitiveContentError):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": str(e), "sensitivity_score": e.score},
        )
    if isinstance(e, NotReadyError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")


# -----------------------------
# Manifest
# -----------------------------
@router.get(
    "/{video_id}/manifest",
    summary="Manifeste de lecture (métadonnées + URLs HLS/DASH)",
    response_model=ManifestOut,
    responses=_PLAYBACK_RESPONSES,
)
def get_manifest(
    video_id: int = Path(..., ge=1),
    svc: StreamingService = Depends(get_streaming_service),
):
    try:
        return svc.get_manifest(video_id)
    except (NotFoundError, NotReadyError, SensitiveContentError) as e:
        raise _playback_error(e)


# -----------------------------
# Thumbnail (CDN)
# -----------------------------
@router.get(
    "/{video_id}/thumbnail",
    summary="Vignette (servie via le CDN)",
    response_class=Response,
)
def get_thumbnail(
    video_id: int = Path(..., ge=1),
    platform: Platform = Depends(get_platform),
    svc: StreamingService = Depends(get_streaming_service),
):
    try:
        asset = svc.get_thumbnail(video_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    return Response(
        content=asset.data,
        media_type=asset.content_type,
        headers={
            "X-Cache": asset.cache_status,
            "Cache-Control": f"public, max-age={platform.settings.THUMBNAIL_CACHE_CONTROL_MAX_AGE}",
        },
    )


# -----------------------------
# Video file (HTTP Range)
# -----------------------------
@router.get(
    "/{video_id}/video",
    summary="Fichier vidéo avec support des requêtes Range",
    response_class=StreamingResponse,
    responses={**_PLAYBACK_RESPONSES, 206: {"description": "Contenu partiel"}, 416: {"description": "Range invalide"}},
)
def get_video_file(
    video_id: int = Path(..., ge=1),
    range_header: Optional[str] = Header(None, alias="Range"),
    platform: Platform = Depends(get_platform),
    svc: StreamingService = Depends(get_streaming_service),
):
    try:
        part = svc.get_video_slice(video_id, range_header)
    except RangeNotSatisfiableError as e:
        raise HTTPException(
            status_code=status.HTTP_416_REQUESTED_RANGE_NOT_SATISFIABLE,
            detail=str(e),
            headers={"Content-Range": f"bytes */{e.size}"},
        )
    except (NotFoundError, NotReadyError, SensitiveContentError) as e:
        raise _playback_error(e)

    headers = {"Accept-Ranges": "bytes", "Content-Length": str(part.length)}
    if part.partial:
        headers["Content-Range"] = part.content_range
    return StreamingResponse(
        platform.storage.iter_range(part.path, part.start, part.end),
        status_code=status.HTTP_206_PARTIAL_CONTENT if part.partial else status.HTTP_200_OK,
        media_type=part.content_type,
        headers=headers,
    )


# -----------------------------
# Stream (HLS / DASH via CDN)
# -----------------------------
@router.get(
    "/{video_id}",
    summary="Flux HLS ou DASH (servi via le CDN, en-tête X-Cache)",
    response_class=Response,
    responses=_PLAYBACK_RESPONSES,
)
def get_stream(
    video_id: int = Path(..., ge=1),
    format: str = Query("hls", description="hls | dash"),
    platform: Platform = Depends(get_platform),
    svc: StreamingService = Depends(get_streaming_service),
):
    try:
        asset = svc.get_stream(video_id, format)
    except (NotFoundError, NotReadyError, SensitiveContentError, ValidationError) as e:
        raise _playback_error(e)
    return Response(
        content=asset.data,
        media_type=asset.content_type,
        headers={
            "X-Cache": asset.cache_status,
            "Cache-Control": f"public, max-age={platform.settings.STREAM_CACHE_CONTROL_MAX_AGE}",
        },
    )
