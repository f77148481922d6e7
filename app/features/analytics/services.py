import logging

from app.core.errors import NotFoundError, ValidationError
from app.db.repositories.analytics import AnalyticsRepository
from app.db.repositories.videos import VideoRepository
from app.domain.lifecycle import ANALYTICS_EVENTS
from app.features.analytics.schemas import TrackEventIn, TrackEventOut, VideoAnalyticsOut

logger = logging.getLogger(__name__)


class AnalyticsService:
    """
    Evénements de lecture envoyés par le player.
    Un événement "view" est enregistré mais ne modifie pas le compteur de vues de la vidéo.
    """

    def __init__(self, *, repo: AnalyticsRepository, video_repo: VideoRepository):
        self.repo = repo
        self.video_repo = video_repo

    def track(self, payload: TrackEventIn) -> TrackEventOut:
        if payload.video_id is None or not payload.event:
            raise ValidationError("video_id et event sont requis")
        if payload.event not in ANALYTICS_EVENTS:
            raise ValidationError(f"Evénement invalide. Autorisés : {', '.join(sorted(ANALYTICS_EVENTS))}")
        if not self.video_repo.get(payload.video_id):
            raise NotFoundError("Vidéo introuvable")

        row = self.repo.create(video_id=payload.video_id, event=payload.event, details=dict(payload.details))
        logger.debug("Tracked %s for video %s", payload.event, payload.video_id)
        return TrackEventOut(id=row.id)

    def summary(self, video_id: int) -> VideoAnalyticsOut:
        video = self.video_repo.get(video_id)
        if not video:
            raise NotFoundError("Vidéo introuvable")
        return VideoAnalyticsOut(
            video_id=video_id,
            views=video.views,
            events={e: self.repo.count_for_video(video_id, e) for e in sorted(ANALYTICS_EVENTS)},
        )
