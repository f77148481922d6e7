"""
➡️ But : Servir les sorties du pipeline (manifeste, flux HLS/DASH, vignette, fichier vidéo par plages).

Les flux et vignettes passent par le cache CDN :
HIT -> octets du cache ; MISS -> lecture disque puis mise en cache.

Règles de lecture :
  - vidéo signalée (flagged) -> SensitiveContentError (403, avec le score)
  - vidéo pas encore prête -> NotReadyError (400)

Vues : +1 par flux accordé (HIT ou MISS) ; sur /video, seulement sans Range ou si la plage commence à 0.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from app.core.config import Settings
from app.core.errors import NotFoundError, NotReadyError, SensitiveContentError, ValidationError
from app.db.models.videos import Video
from app.db.repositories.videos import VideoRepository
from app.domain.lifecycle import SensitivityStatus, VideoStatus
from app.features.cdn.cache import CDNCache, asset_key
from app.features.streaming.schemas import ManifestOut, StreamFormatsOut
from app.utils.media_files import EXTENSION_MIME, STREAM_CONTENT_TYPES, THUMBNAIL_CONTENT_TYPE
from app.utils.ranges import parse_range_header
from app.utils.storage import LocalStorage

logger = logging.getLogger(__name__)

CACHE_HIT = "HIT"
CACHE_MISS = "MISS"


@dataclass(frozen=True)
class CachedAsset:
    data: bytes
    content_type: str
    cache_status: str  # HIT | MISS


@dataclass(frozen=True)
class VideoSlice:
    path: Path
    start: int
    end: int  # inclus
    size: int
    content_type: str
    partial: bool

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.size}"


class StreamingService:
    def __init__(
        self,
        *,
        repo: VideoRepository,
        storage: LocalStorage,
        cdn: CDNCache,
        settings: Settings,
    ):
        self.repo = repo
        self.storage = storage
        self.cdn = cdn
        self.settings = settings

    # -------- Helpers --------

    def _get_or_404(self, video_id: int) -> Video:
        video = self.repo.get(video_id)
        if not video:
            raise NotFoundError("Vidéo introuvable")
        return video

    def _get_playable(self, video_id: int) -> Video:
        video = self._get_or_404(video_id)
        if (
            video.status == VideoStatus.FLAGGED.value
            or video.sensitivity_status == SensitivityStatus.FLAGGED.value
        ):
            raise SensitiveContentError(video.sensitivity_score)
        if video.status != VideoStatus.READY.value:
            raise NotReadyError(f"Vidéo pas encore prête (status={video.status})")
        return video

    def _stream_url(self, video_id: int, fmt: str) -> str:
        return f"{self.settings.API_PREFIX}/stream/{video_id}?format={fmt}"

    # -------- Lecture --------

    def get_manifest(self, video_id: int) -> ManifestOut:
        video = self._get_playable(video_id)
        return ManifestOut(
            id=video.id,
            title=video.title,
            description=video.description,
            duration=video.duration,
            resolution=video.resolution,
            thumbnail=(
                f"{self.settings.API_PREFIX}/stream/{video.id}/thumbnail" if video.thumbnail_path else None
            ),
            formats=StreamFormatsOut(hls=self._stream_url(video.id, "hls"), dash=self._stream_url(video.id, "dash")),
            sensitivity_status=video.sensitivity_status,
            views=video.views,
        )

    def get_stream(self, video_id: int, fmt: str = "hls") -> CachedAsset:
        if fmt not in STREAM_CONTENT_TYPES:
            raise ValidationError(f"Format inconnu: {fmt} (hls | dash)")
        video = self._get_playable(video_id)

        key = asset_key(video_id, fmt)
        cached = self.cdn.get(key)
        if cached is not None:
            asset = CachedAsset(data=cached.data, content_type=cached.content_type, cache_status=CACHE_HIT)
        else:
            path = video.hls_path if fmt == "hls" else video.dash_path
            if not self.storage.exists(path):
                raise NotFoundError(f"Flux {fmt} introuvable")
            data = self.storage.read_bytes(path)
            content_type = STREAM_CONTENT_TYPES[fmt]
            self.cdn.cache(key, data, content_type, ttl=self.settings.CDN_MEDIA_TTL_SECONDS)
            asset = CachedAsset(data=data, content_type=content_type, cache_status=CACHE_MISS)

        self.repo.increment_views(video_id)
        logger.debug("Stream %s for video %s served (%s)", fmt, video_id, asset.cache_status)
        return asset

    def get_thumbnail(self, video_id: int) -> CachedAsset:
        video = self._get_or_404(video_id)
        key = asset_key(video_id, "thumbnail")
        cached = self.cdn.get(key)
        if cached is not None:
            return CachedAsset(data=cached.data, content_type=cached.content_type, cache_status=CACHE_HIT)

        if not self.storage.exists(video.thumbnail_path):
            raise NotFoundError("Vignette introuvable")
        data = self.storage.read_bytes(video.thumbnail_path)
        self.cdn.cache(key, data, THUMBNAIL_CONTENT_TYPE, ttl=self.settings.CDN_THUMBNAIL_TTL_SECONDS)
        return CachedAsset(data=data, content_type=THUMBNAIL_CONTENT_TYPE, cache_status=CACHE_MISS)

    def get_video_slice(self, video_id: int, range_header: Optional[str]) -> VideoSlice:
        """Fichier transcodé (ou original) ; lève RangeNotSatisfiableError sur une plage invalide."""
        video = self._get_playable(video_id)
        source = video.processed_path or video.original_path
        if not self.storage.exists(source):
            raise NotFoundError("Fichier vidéo introuvable")

        size = self.storage.file_size(source)
        requested = parse_range_header(range_header, size)
        start, end = requested if requested else (0, size - 1)
        if start == 0:
            self.repo.increment_views(video_id)

        return VideoSlice(
            path=Path(source),
            start=start,
            end=end,
            size=size,
            content_type=EXTENSION_MIME.get(Path(source).suffix.lstrip(".").lower(), video.mime_type),
            partial=requested is not None,
        )
