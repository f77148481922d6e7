import logging

from fastapi.concurrency import run_in_threadpool

from app.core.config import Settings
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.db.models.videos import Video
from app.db.repositories.videos import VideoRepository
from app.domain.lifecycle import VideoStatus, ensure_transition
from app.features.events.broadcaster import EventBroadcaster
from app.features.events.schemas import UploadCompleteEvent, UploadProgressEvent
from app.features.processing.pipeline import VideoProcessor
from app.features.uploads.chunks import ChunkAssembler
from app.features.uploads.schemas import UploadInitIn, UploadInitOut, UploadChunkOut
from app.utils.media_files import ALLOWED_VIDEO_MIME, EXTENSION_MIME, validate_video_filename

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


class UploadService:
    """
    Upload par chunks :
    - init_upload : valide le fichier annoncé et crée la vidéo (status uploading).
    - upload_chunk : persiste un chunk ; au dernier, assemble, passe la vidéo en processing et l'ajoute au pipeline.
    Aucune notion HTTP ici : erreurs métier de app.core.errors.
    """

    def __init__(
        self,
        *,
        repo: VideoRepository,
        assembler: ChunkAssembler,
        broadcaster: EventBroadcaster,
        processor: VideoProcessor,
        settings: Settings,
    ):
        self.repo = repo
        self.assembler = assembler
        self.broadcaster = broadcaster
        self.processor = processor
        self.settings = settings

    @property
    def max_chunk_bytes(self) -> int:
        return self.settings.MAX_CHUNK_MB * _MB

    def init_upload(self, payload: UploadInitIn) -> UploadInitOut:
        if not payload.filename or payload.size is None:
            raise ValidationError("filename et size sont requis")
        try:
            name, ext = validate_video_filename(
                payload.filename, allowed_extensions=self.settings.ALLOWED_VIDEO_EXTENSIONS
            )
        except ValueError as e:
            raise ValidationError(str(e))

        if payload.size <= 0:
            raise ValidationError("size doit être > 0")
        if payload.size > self.settings.MAX_UPLOAD_MB * _MB:
            raise ValidationError(f"Fichier trop volumineux (> {self.settings.MAX_UPLOAD_MB} MB)")

        video = self.repo.create(
            owner_id=payload.owner_id,
            title=(payload.title or name.rsplit(".", 1)[0]).strip(),
            description=payload.description or "",
            filename=name,
            format=ext,
            mime_type=payload.mime_type or EXTENSION_MIME.get(ext, "application/octet-stream"),
            bytes=payload.size,
            status=VideoStatus.UPLOADING.value,
        )
        logger.info("Upload initialized for video %s (%s, %d bytes)", video.id, name, payload.size)
        return UploadInitOut(
            video_id=video.id,
            upload_url=f"{self.settings.API_PREFIX}/uploads/chunk",
            max_chunk_bytes=self.max_chunk_bytes,
        )

    async def upload_chunk(self, *, video_id: int, chunk_index: int, total_chunks: int, data: bytes) -> UploadChunkOut:
        """
        Appelé depuis la boucle asyncio (route async) : l'ajout au pipeline en a besoin.
        Les écritures disque (chunk, assemblage) passent par le threadpool.
        """
        video = self.repo.get(video_id)
        if not video:
            raise NotFoundError("Vidéo introuvable")
        if video.status != VideoStatus.UPLOADING.value:
            raise ConflictError(f"Upload déjà terminé (status={video.status})")

        if total_chunks < 1:
            raise ValidationError("total_chunks doit être >= 1")
        if chunk_index < 0 or chunk_index >= total_chunks:
            raise ValidationError(f"chunk_index hors limites (0..{total_chunks - 1})")
        if not data:
            raise ValidationError("Chunk vide")
        if len(data) > self.max_chunk_bytes:
            raise ValidationError(f"Chunk trop volumineux (> {self.settings.MAX_CHUNK_MB} MB)")

        if video.total_chunks is None:
            video = self.repo.update(video, total_chunks=total_chunks)
        elif video.total_chunks != total_chunks:
            raise ValidationError(
                f"total_chunks incohérent ({total_chunks} reçu, {video.total_chunks} attendu)"
            )

        received = await run_in_threadpool(self.assembler.save_chunk, video_id, chunk_index, data)
        progress = round(min(received, total_chunks) / total_chunks * 100, 2)
        self.broadcaster.publish(
            video_id,
            UploadProgressEvent(video_id=video_id, progress=progress, received=received, total_chunks=total_chunks),
        )

        complete = received >= total_chunks
        if complete:
            await self._complete(video, total_chunks)

        return UploadChunkOut(
            video_id=video_id,
            chunk_index=chunk_index,
            received=received,
            total_chunks=total_chunks,
            progress=progress,
            complete=complete,
        )

    async def _complete(self, video: Video, total_chunks: int) -> None:
        # deux chunks "finaux" concurrents : un seul assemble
        if not self.assembler.claim_assembly(video.id):
            return
        try:
            video = self.repo.refresh(video)
            if video.status != VideoStatus.UPLOADING.value:
                return
            assembled = await run_in_threadpool(
                self.assembler.assemble_chunks, video.id, total_chunks, video.filename
            )
            ensure_transition(video.status, VideoStatus.PROCESSING.value)

            mime = assembled.detected_mime if assembled.detected_mime in ALLOWED_VIDEO_MIME else video.mime_type
            self.repo.update(
                video,
                original_path=str(assembled.path),
                bytes=assembled.size,
                sha256=assembled.sha256,
                mime_type=mime,
                status=VideoStatus.PROCESSING.value,
                processing_progress=0.0,
            )
        finally:
            self.assembler.release_assembly(video.id)

        self.processor.enqueue(video.id)
        self.broadcaster.publish(video.id, UploadCompleteEvent(video_id=video.id))
        logger.info("Upload complete for video %s, processing queued", video.id)
