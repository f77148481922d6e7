"""
➡️ But : Faire passer chaque vidéo uploadée dans une suite ordonnée d'étapes (transcodage, vignette, analyse, HLS, DASH).

VideoProcessor.enqueue() : ajoute un id à la file FIFO et démarre le worker s'il ne tourne pas.

Le worker traite strictement UNE vidéo à la fois :
  - crée un job + une ligne par étape,
  - pour chaque étape : processing -> progression (attentes non bloquantes) -> handler de résultat -> completed,
  - publie les événements (started / step / progress / completed / error) via le broadcaster.

Chaque passage repart de zéro : les sorties du passage précédent (chemins, métadonnées, sensibilité) sont effacées.

Une étape en erreur : job failed, vidéo failed, étapes suivantes laissées en pending, pas de retry.
La vidéo suivante de la file est traitée normalement.

🔹 Avantages :

Les étapes sont de la configuration (StepDefinition) : en ajouter une ne touche pas à l'ordonnanceur.

Le worker est le seul à écrire les jobs : pas de mise à jour concurrente.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Sequence

from app.core.errors import NotFoundError, StepExecutionError
from app.db.models.base import utcnow
from app.db.models.processing_jobs import ProcessingJob, ProcessingStep
from app.db.models.videos import Video
from app.db.repositories.processing_jobs import ProcessingJobRepository, ProcessingStepRepository
from app.db.repositories.videos import VideoRepository
from app.db.session import SessionFactory
from app.domain.lifecycle import JobStatus, SensitivityStatus, StepStatus, VideoStatus, ensure_transition
from app.features.events.broadcaster import EventBroadcaster
from app.features.events.schemas import (
    ProcessingCompletedEvent,
    ProcessingErrorEvent,
    ProcessingProgressEvent,
    ProcessingStartedEvent,
    ProcessingStepEvent,
    SensitivityOut,
)

logger = logging.getLogger(__name__)


@dataclass
class StepContext:
    """Etat partagé par les handlers d'une exécution (une vidéo, un job)."""

    video: Video
    job: ProcessingJob
    videos: VideoRepository
    results: Dict[str, Any] = field(default_factory=dict)

    @property
    def video_id(self) -> int:
        return self.video.id

    @property
    def source_path(self) -> Optional[str]:
        """Meilleure source disponible : fichier transcodé, sinon original."""
        return self.video.processed_path or self.video.original_path

    def update_video(self, **changes) -> Video:
        return self.videos.update(self.video, **changes)


def reset_outputs() -> Dict[str, Any]:
    """Champs de la vidéo écrits par les étapes : remis à zéro au début de chaque passage."""
    return dict(
        processing_progress=0.0,
        processed_path=None,
        thumbnail_path=None,
        hls_path=None,
        dash_path=None,
        duration=None,
        resolution=None,
        bitrate=None,
        codec=None,
        sensitivity_status=SensitivityStatus.PENDING.value,
        sensitivity_score=None,
        sensitivity_reasons=[],
    )


StepHandler = Callable[[StepContext], Awaitable[None]]


@dataclass(frozen=True)
class StepDefinition:
    name: str
    label: str
    duration: float  # secondes nominales, multipliées par time_scale
    handler: StepHandler


class VideoProcessor:
    def __init__(
        self,
        *,
        session_factory: SessionFactory,
        broadcaster: EventBroadcaster,
        steps: Sequence[StepDefinition],
        time_scale: float = 1.0,
        progress_ticks: int = 10,
        dedupe: bool = False,
        step_timeout: Optional[float] = None,
    ):
        if not steps:
            raise ValueError("Le pipeline doit contenir au moins une étape")
        names = [s.name for s in steps]
        if len(set(names)) != len(names):
            raise ValueError(f"Noms d'étapes dupliqués: {names}")
        if progress_ticks < 1:
            raise ValueError("progress_ticks doit être >= 1")

        self._session_factory = session_factory
        self.broadcaster = broadcaster
        self.steps: List[StepDefinition] = list(steps)
        self.time_scale = time_scale
        self.progress_ticks = progress_ticks
        self.dedupe = dedupe
        self.step_timeout = step_timeout

        self._queue: Deque[int] = deque()
        self._task: Optional[asyncio.Task] = None
        self._current: Optional[int] = None

    # -----------------------------
    # File d'attente
    # -----------------------------

    @property
    def pending(self) -> List[int]:
        return list(self._queue)

    @property
    def current_video_id(self) -> Optional[int]:
        return self._current

    @property
    def is_processing(self) -> bool:
        return self._task is not None and not self._task.done()

    def enqueue(self, video_id: int) -> bool:
        """
        Ajoute une vidéo à la file. Doit être appelé depuis la boucle asyncio de l'application.
        Retourne False si l'id est ignoré (dédoublonnage activé et id déjà en file / en cours).
        """
        if self.dedupe and (video_id in self._queue or video_id == self._current):
            logger.info("Video %s already queued or processing, enqueue ignored", video_id)
            return False

        self._queue.append(video_id)
        logger.info("Video %s added to processing queue (%d pending)", video_id, len(self._queue))
        if not self.is_processing:
            self._task = asyncio.get_running_loop().create_task(self._drain(), name="video-processor")
        return True

    async def join(self) -> None:
        """Attend que la file soit entièrement traitée."""
        while self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

    async def shutdown(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        if self._queue:
            logger.warning("Processor stopped with %d queued videos: %s", len(self._queue), list(self._queue))

    async def _drain(self) -> None:
        while self._queue:
            video_id = self._queue.popleft()
            self._current = video_id
            try:
                await self.process_video(video_id)
            except Exception:
                # une vidéo en erreur n'arrête jamais le worker
                logger.exception("Failed to process video %s", video_id)
            finally:
                self._current = None

    # -----------------------------
    # Exécution d'une vidéo
    # -----------------------------

    async def process_video(self, video_id: int) -> ProcessingJob:
        with self._session_factory() as session:
            videos = VideoRepository(session)
            jobs = ProcessingJobRepository(session)
            step_rows = ProcessingStepRepository(session)

            video = videos.get(video_id)
            if video is None:
                raise NotFoundError(f"Video {video_id} not found")

            job, rows = jobs.create_with_steps(
                video_id=video_id,
                steps=[(s.name, s.label) for s in self.steps],
            )
            ensure_transition(video.status, VideoStatus.PROCESSING.value)
            videos.update(video, status=VideoStatus.PROCESSING.value, **reset_outputs())
            jobs.update(job, status=JobStatus.PROCESSING.value, started_at=utcnow())

            logger.info("Starting processing for video %s (job %s)", video_id, job.id)
            self.broadcaster.publish(video_id, ProcessingStartedEvent(video_id=video_id, job_id=job.id))

            ctx = StepContext(video=video, job=job, videos=videos)
            try:
                for index, (step, row) in enumerate(zip(self.steps, rows)):
                    await self._run_step(ctx, jobs, step_rows, step, row, index)
            except StepExecutionError as exc:
                self._fail(ctx, jobs, exc)
                return job

            self._finalize(ctx, jobs)
            return job

    async def _run_step(
        self,
        ctx: StepContext,
        jobs: ProcessingJobRepository,
        step_rows: ProcessingStepRepository,
        step: StepDefinition,
        row: ProcessingStep,
        index: int,
    ) -> None:
        logger.info("Processing step %s (%s) for video %s", step.name, step.label, ctx.video_id)
        step_rows.update(row, status=StepStatus.PROCESSING.value, started_at=utcnow())
        jobs.update(ctx.job, current_step=step.name)
        self._publish_step(ctx, step, StepStatus.PROCESSING.value)

        try:
            work = self._execute(ctx, jobs, step_rows, step, row, index)
            if self.step_timeout:
                await asyncio.wait_for(work, timeout=self.step_timeout)
            else:
                await work
        except asyncio.TimeoutError:
            message = f"Timed out after {self.step_timeout:g}s"
            step_rows.update(row, status=StepStatus.FAILED.value, error=message)
            raise StepExecutionError(step.name, message)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            step_rows.update(row, status=StepStatus.FAILED.value, error=message)
            raise StepExecutionError(step.name, message) from exc

        # le handler a déjà écrit ses résultats : une étape completed a toujours ses sorties
        step_rows.update(row, status=StepStatus.COMPLETED.value, progress=100.0, completed_at=utcnow())
        self._advance(ctx, jobs, self._overall(index, 1.0))
        self._publish_step(ctx, step, StepStatus.COMPLETED.value)

    async def _execute(
        self,
        ctx: StepContext,
        jobs: ProcessingJobRepository,
        step_rows: ProcessingStepRepository,
        step: StepDefinition,
        row: ProcessingStep,
        index: int,
    ) -> None:
        interval = step.duration * self.time_scale / self.progress_ticks
        for tick in range(1, self.progress_ticks + 1):
            await asyncio.sleep(interval)
            fraction = tick / self.progress_ticks
            step_progress = round(fraction * 100, 2)
            step_rows.update(row, progress=max(row.progress, step_progress))
            self._advance(ctx, jobs, self._overall(index, fraction))
            self.broadcaster.publish(
                ctx.video_id,
                ProcessingProgressEvent(
                    video_id=ctx.video_id,
                    step=step.name,
                    label=step.label,
                    step_progress=step_progress,
                    total_progress=ctx.job.progress,
                ),
            )
        await step.handler(ctx)

    def _overall(self, index: int, fraction: float) -> float:
        return round((index + fraction) / len(self.steps) * 100, 2)

    def _advance(self, ctx: StepContext, jobs: ProcessingJobRepository, total: float) -> None:
        # 100 est réservé à la transition completed ; jamais de régression
        if total >= 100 or total <= ctx.job.progress:
            return
        jobs.update(ctx.job, progress=total)
        ctx.update_video(processing_progress=total)

    def _publish_step(self, ctx: StepContext, step: StepDefinition, status: str) -> None:
        self.broadcaster.publish(
            ctx.video_id,
            ProcessingStepEvent(video_id=ctx.video_id, step=step.name, label=step.label, status=status),
        )

    # -----------------------------
    # Transitions terminales
    # -----------------------------

    def _fail(self, ctx: StepContext, jobs: ProcessingJobRepository, exc: StepExecutionError) -> None:
        logger.error("Processing failed for video %s at step %s: %s", ctx.video_id, exc.step, exc.message)
        jobs.update(ctx.job, status=JobStatus.FAILED.value, error=exc.message, completed_at=utcnow())
        ctx.update_video(status=VideoStatus.FAILED.value)
        self.broadcaster.publish(
            ctx.video_id,
            ProcessingErrorEvent(video_id=ctx.video_id, step=exc.step, message=exc.message),
        )

    def _finalize(self, ctx: StepContext, jobs: ProcessingJobRepository) -> None:
        result = ctx.results.get("sensitivity")
        sensitivity = result.status if result is not None else ctx.video.sensitivity_status
        final = VideoStatus.FLAGGED if sensitivity == SensitivityStatus.FLAGGED.value else VideoStatus.READY

        jobs.update(
            ctx.job,
            status=JobStatus.COMPLETED.value,
            progress=100.0,
            current_step=None,
            completed_at=utcnow(),
        )
        ctx.update_video(status=final.value, processing_progress=100.0)

        logger.info("Processing completed for video %s (%s)", ctx.video_id, final.value)
        self.broadcaster.publish(
            ctx.video_id,
            ProcessingCompletedEvent(
                video_id=ctx.video_id,
                status=final.value,
                sensitivity=SensitivityOut(
                    status=ctx.video.sensitivity_status,
                    confidence=ctx.video.sensitivity_score,
                    reasons=list(ctx.video.sensitivity_reasons or []),
                ),
            ),
        )
