import logging
from typing import Optional

from app.core.errors import ConflictError, NotFoundError
from app.db.repositories.processing_jobs import ProcessingJobRepository
from app.db.repositories.videos import VideoRepository
from app.domain.lifecycle import SensitivityStatus, VideoStatus, ensure_transition
from app.features.admin.schemas import (
    CDNInvalidateOut,
    CDNStatsOut,
    JobAdminOut,
    QueueOut,
    SensitivityUpdateOut,
    StatsOut,
)
from app.features.cdn.cache import CDNCache, video_prefix
from app.features.processing.pipeline import VideoProcessor

logger = logging.getLogger(__name__)


class AdminService:
    """
    Supervision de la plateforme :
    - statistiques globales + file du pipeline
    - modération manuelle de la sensibilité (safe -> ready, flagged -> flagged)
    - inspection / purge du cache CDN
    """

    def __init__(
        self,
        *,
        video_repo: VideoRepository,
        job_repo: ProcessingJobRepository,
        cdn: CDNCache,
        processor: VideoProcessor,
    ):
        self.video_repo = video_repo
        self.job_repo = job_repo
        self.cdn = cdn
        self.processor = processor

    def queue(self) -> QueueOut:
        return QueueOut(
            pending=self.processor.pending,
            current_video_id=self.processor.current_video_id,
            is_processing=self.processor.is_processing,
        )

    def stats(self, *, recent: int = 10) -> StatsOut:
        count = self.video_repo.count_by_status
        return StatsOut(
            total_videos=self.video_repo.count(),
            uploading=count(VideoStatus.UPLOADING.value),
            processing=count(VideoStatus.PROCESSING.value),
            ready=count(VideoStatus.READY.value),
            flagged=count(VideoStatus.FLAGGED.value),
            failed=count(VideoStatus.FAILED.value),
            pending_review=self.video_repo.count_by_sensitivity(SensitivityStatus.FLAGGED.value),
            total_views=self.video_repo.total_views(),
            storage_used=self.video_repo.total_bytes(),
            recent_jobs=self.jobs(limit=recent),
            queue=self.queue(),
        )

    def jobs(self, *, limit: int = 50, status: Optional[str] = None):
        return [JobAdminOut.model_validate(j) for j in self.job_repo.list_recent(limit=limit, status=status)]

    def moderate(self, video_id: int, sensitivity_status: str) -> SensitivityUpdateOut:
        video = self.video_repo.get(video_id)
        if not video:
            raise NotFoundError("Vidéo introuvable")
        if video.status not in (VideoStatus.READY.value, VideoStatus.FLAGGED.value):
            raise ConflictError(f"Modération impossible (status={video.status})")

        target = (
            VideoStatus.READY.value
            if sensitivity_status == SensitivityStatus.SAFE.value
            else VideoStatus.FLAGGED.value
        )
        if target != video.status:
            ensure_transition(video.status, target)

        video = self.video_repo.update(video, sensitivity_status=sensitivity_status, status=target)
        self.cdn.invalidate_prefix(video_prefix(video_id))
        logger.info("Video %s moderated: sensitivity=%s status=%s", video_id, sensitivity_status, target)
        return SensitivityUpdateOut(id=video.id, status=video.status, sensitivity_status=video.sensitivity_status)

    def cdn_stats(self) -> CDNStatsOut:
        return CDNStatsOut(**self.cdn.get_stats())

    def cdn_invalidate(self, path: Optional[str] = None) -> CDNInvalidateOut:
        """Sans path : vide tout le cache."""
        if path is None:
            size = len(self.cdn)
            self.cdn.clear()
            logger.info("CDN cache cleared (%d entries)", size)
            return CDNInvalidateOut(invalidated=size)
        return CDNInvalidateOut(invalidated=int(self.cdn.invalidate(path)))
