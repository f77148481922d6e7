"""
➡️ But : Interfaces "backend" appelées par le pipeline, et leurs implémentations simulées.

MetadataBackend.extract_metadata(path) -> VideoMetadata
SensitivityBackend.analyze_sensitivity(path) -> SensitivityResult
TranscodingBackend : transcode / generate_thumbnail / generate_hls / generate_dash -> chemin produit

Les versions Simulated* remplacent FFmpeg / un modèle de modération : délais + tirages aléatoires.
Une vraie implémentation ne remplace que ces classes ; la machine à états du pipeline ne bouge pas.
"""

import asyncio
import random
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol

from app.utils.storage import LocalStorage


@dataclass(frozen=True)
class VideoMetadata:
    duration: float
    resolution: str
    bitrate: int
    codec: str


@dataclass(frozen=True)
class SensitivityResult:
    status: str  # safe | flagged
    confidence: float
    reasons: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Rendition:
    name: str
    width: int
    height: int
    bandwidth: int


DEFAULT_RENDITIONS = (
    Rendition("1080p", 1920, 1080, 5_000_000),
    Rendition("720p", 1280, 720, 2_800_000),
    Rendition("480p", 854, 480, 1_400_000),
)


class MetadataBackend(Protocol):
    async def extract_metadata(self, path: str) -> VideoMetadata: ...


class SensitivityBackend(Protocol):
    async def analyze_sensitivity(self, path: str) -> SensitivityResult: ...


class TranscodingBackend(Protocol):
    async def transcode(self, video_id: int, source: str) -> str: ...

    async def generate_thumbnail(self, video_id: int, source: str) -> str: ...

    async def generate_hls(self, video_id: int, source: str) -> str: ...

    async def generate_dash(self, video_id: int, source: str) -> str: ...


# -----------------------------
# Implémentations simulées
# -----------------------------

class SimulatedMetadataBackend:
    def __init__(self, *, rng: Optional[random.Random] = None, delay: float = 0.5):
        self.rng = rng or random.Random()
        self.delay = delay

    async def extract_metadata(self, path: str) -> VideoMetadata:
        await asyncio.sleep(self.delay)
        return VideoMetadata(
            duration=float(self.rng.randint(60, 660)),
            resolution=self.rng.choice(["1920x1080", "1280x720", "854x480"]),
            bitrate=self.rng.randint(1000, 6000),
            codec="h264",
        )


class SimulatedSensitivityBackend:
    def __init__(self, *, rng: Optional[random.Random] = None, flag_rate: float = 0.2, delay: float = 0.0):
        self.rng = rng or random.Random()
        self.flag_rate = flag_rate
        self.delay = delay

    async def analyze_sensitivity(self, path: str) -> SensitivityResult:
        await asyncio.sleep(self.delay)
        flagged = self.rng.random() < self.flag_rate
        confidence = round(self.rng.random() * 0.3 + 0.7, 4)  # 70-100%
        reasons = ["Potential sensitive content detected", "Manual review recommended"] if flagged else []
        return SensitivityResult(status="flagged" if flagged else "safe", confidence=confidence, reasons=reasons)


# JPEG minimal (SOI / APP0 JFIF / EOI) servant de vignette factice
_PLACEHOLDER_JPEG = (
    b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
    b"\xff\xd9"
)


class SimulatedTranscoder:
    """Produit de vrais fichiers sur disque, sans aucun travail de codec."""

    def __init__(self, storage: LocalStorage, *, stream_url_prefix: str = "/api/v1/stream"):
        self.storage = storage
        self.stream_url_prefix = stream_url_prefix.rstrip("/")
        self.renditions = DEFAULT_RENDITIONS

    async def transcode(self, video_id: int, source: str) -> str:
        stem = Path(source).stem
        target = self.storage.processed_path(f"{stem}_720p.mp4")
        target.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copyfile, source, target)
        return str(target)

    async def generate_thumbnail(self, video_id: int, source: str) -> str:
        target = self.storage.thumbnail_path(f"{Path(source).stem}-thumb.jpg")
        self.storage.write_bytes_atomic(target, _PLACEHOLDER_JPEG)
        return str(target)

    async def generate_hls(self, video_id: int, source: str) -> str:
        lines = ["#EXTM3U", "#EXT-X-VERSION:3"]
        for r in self.renditions:
            lines.append(f"#EXT-X-STREAM-INF:BANDWIDTH={r.bandwidth},RESOLUTION={r.width}x{r.height}")
            lines.append(f"{self.stream_url_prefix}/{video_id}/video?quality={r.name}")
        target = self.storage.stream_dir(video_id, "hls") / "playlist.m3u8"
        self.storage.write_bytes_atomic(target, ("\n".join(lines) + "\n").encode("utf-8"))
        return str(target)

    async def generate_dash(self, video_id: int, source: str) -> str:
        reps = "\n".join(
            f'      <Representation id="{r.name}" bandwidth="{r.bandwidth}" width="{r.width}" height="{r.height}">\n'
            f"        <BaseURL>{self.stream_url_prefix}/{video_id}/video?quality={r.name}</BaseURL>\n"
            f"      </Representation>"
            for r in self.renditions
        )
        mpd = (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            '<MPD xmlns="urn:mpeg:dash:schema:mpd:2011" type="static">\n'
            "  <Period>\n"
            '    <AdaptationSet mimeType="video/mp4">\n'
            f"{reps}\n"
            "    </AdaptationSet>\n"
            "  </Period>\n"
            "</MPD>\n"
        )
        target = self.storage.stream_dir(video_id, "dash") / "manifest.mpd"
        self.storage.write_bytes_atomic(target, mpd.encode("utf-8"))
        return str(target)
