import logging
from typing import Optional, Sequence

from app.core.config import Settings
from app.core.errors import ConflictError, NotFoundError
from app.db.models.videos import Video
from app.db.repositories.analytics import AnalyticsRepository
from app.db.repositories.processing_jobs import ProcessingJobRepository, ProcessingStepRepository
from app.db.repositories.videos import VideoRepository
from app.domain.lifecycle import VideoStatus, ensure_transition
from app.features.cdn.cache import CDNCache, video_prefix
from app.features.processing.pipeline import VideoProcessor, reset_outputs
from app.features.uploads.chunks import ChunkAssembler
from app.features.videos.schemas import (
    JobOut,
    ProcessingStatusOut,
    ReprocessOut,
    StepOut,
    VideoList,
    VideoOut,
    VideoStatusOut,
)
from app.utils.storage import LocalStorage

logger = logging.getLogger(__name__)


class VideoService:
    """
    Lecture / cycle de vie des vidéos :
    - liste paginée, détail, statut de traitement (job + étapes du dernier passage)
    - re-soumission au pipeline
    - suppression (fichiers, jobs, analytics, entrées CDN)
    """

    def __init__(
        self,
        *,
        repo: VideoRepository,
        job_repo: ProcessingJobRepository,
        step_repo: ProcessingStepRepository,
        analytics_repo: AnalyticsRepository,
        storage: LocalStorage,
        assembler: ChunkAssembler,
        cdn: CDNCache,
        processor: VideoProcessor,
        settings: Settings,
    ):
        self.repo = repo
        self.job_repo = job_repo
        self.step_repo = step_repo
        self.analytics_repo = analytics_repo
        self.storage = storage
        self.assembler = assembler
        self.cdn = cdn
        self.processor = processor
        self.settings = settings

    # -------- Helpers --------

    def _get_or_404(self, video_id: int) -> Video:
        video = self.repo.get(video_id)
        if not video:
            raise NotFoundError("Vidéo introuvable")
        return video

    def to_out(self, video: Video) -> VideoOut:
        out = VideoOut.model_validate(video)
        if video.thumbnail_path:
            out.thumbnail_url = f"{self.settings.API_PREFIX}/stream/{video.id}/thumbnail"
        return out

    # -------- Lecture --------

    def list(
        self,
        *,
        offset: int = 0,
        limit: int = 20,
        owner_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> VideoList:
        videos: Sequence[Video] = self.repo.list_filtered(
            offset=offset, limit=limit, owner_id=owner_id, status=status
        )
        total = self.repo.count_filtered(owner_id=owner_id, status=status)
        return VideoList(items=[self.to_out(v) for v in videos], total=total, offset=offset, limit=limit)

    def get(self, video_id: int) -> VideoOut:
        return self.to_out(self._get_or_404(video_id))

    def get_status(self, video_id: int) -> ProcessingStatusOut:
        video = self._get_or_404(video_id)
        job = self.job_repo.latest_for_video(video_id)
        steps = self.step_repo.list_for_job(job.id) if job else []
        return ProcessingStatusOut(
            video=VideoStatusOut.model_validate(video),
            job=JobOut.model_validate(job) if job else None,
            jobs=[
                StepOut(
                    type=s.name,
                    label=s.label,
                    status=s.status,
                    progress=s.progress,
                    error=s.error,
                    started_at=s.started_at,
                    completed_at=s.completed_at,
                )
                for s in steps
            ],
        )

    # -------- Cycle de vie --------

    def reprocess(self, video_id: int) -> ReprocessOut:
        """Relance le pipeline complet (depuis la première étape) sur le fichier original."""
        video = self._get_or_404(video_id)
        if video.status == VideoStatus.UPLOADING.value:
            raise ConflictError("Upload en cours : rien à traiter")
        if video.status == VideoStatus.PROCESSING.value:
            raise ConflictError("Traitement déjà en cours")
        ensure_transition(video.status, VideoStatus.PROCESSING.value)
        if not self.storage.exists(video.original_path):
            raise ConflictError("Fichier original manquant, re-traitement impossible")

        # les sorties du passage précédent ne sont pas reprises
        self.repo.update(video, status=VideoStatus.PROCESSING.value, **reset_outputs())
        self.cdn.invalidate_prefix(video_prefix(video_id))
        queued = self.processor.enqueue(video_id)
        logger.info("Video %s resubmitted for processing (queued=%s)", video_id, queued)
        return ReprocessOut(video_id=video_id, status=video.status, queued=queued)

    def delete(self, video_id: int) -> None:
        video = self._get_or_404(video_id)
        if self.processor.current_video_id == video_id:
            raise ConflictError("Vidéo en cours de traitement")

        for path in (video.original_path, video.processed_path, video.thumbnail_path):
            self.storage.delete_file(path)
        self.storage.delete_tree(self.storage.streams_dir / str(video_id))
        self.assembler.discard(video_id)
        evicted = self.cdn.invalidate_prefix(video_prefix(video_id))

        self.job_repo.delete_for_video(video_id, commit=False)
        self.analytics_repo.delete_for_video(video_id, commit=False)
        self.repo.delete(video)
        logger.info("Video %s deleted (%d CDN entries invalidated)", video_id, evicted)
