from fastapi import APIRouter, Depends, HTTPException, Path, status

from app.api.v1.dependencies import get_analytics_service
from app.core.errors import NotFoundError, ValidationError
from app.features.analytics.schemas import TrackEventIn, TrackEventOut, VideoAnalyticsOut
from app.features.analytics.services import AnalyticsService

router = APIRouter(
    prefix="/analytics",
    tags=["analytics"],
    responses={404: {"description": "Not Found"}},
)


@router.post(
    "/track",
    summary="Enregistrer un événement de lecture (view, play, pause, complete, buffer)",
    status_code=status.HTTP_201_CREATED,
    response_model=TrackEventOut,
)
def track(
    payload: TrackEventIn,
    svc: AnalyticsService = Depends(get_analytics_service),
):
    try:
        return svc.track(payload)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")


@router.get(
    "/videos/{video_id}",
    summary="Compteurs d'événements d'une vidéo",
    response_model=VideoAnalyticsOut,
)
def video_summary(
    video_id: int = Path(..., ge=1),
    svc: AnalyticsService = Depends(get_analytics_service),
):
    try:
        return svc.summary(video_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
