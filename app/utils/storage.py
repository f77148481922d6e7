"""
➡️ But : Stockage local des fichiers (originaux, chunks, fichiers traités, vignettes, flux).

Arborescence sous STORAGE_ROOT :

uploads/              fichiers assemblés
temp/<video_id>/      chunks en cours d'upload
processed/            sorties du transcodage
thumbnails/           vignettes
streams/<video_id>/   playlists HLS / manifestes DASH

🔹 Avantages :

Les services ne manipulent que des chemins, jamais de os.path éparpillés.

Remplaçable par un stockage objet (S3/MinIO) derrière la même interface.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Iterator, Optional, Union
from uuid import uuid4

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class LocalStorage:
    def __init__(self, root: PathLike):
        self.root = Path(root)
        self.uploads_dir = self.root / "uploads"
        self.temp_dir = self.root / "temp"
        self.processed_dir = self.root / "processed"
        self.thumbnails_dir = self.root / "thumbnails"
        self.streams_dir = self.root / "streams"

    def ensure_dirs(self) -> None:
        for d in (self.uploads_dir, self.temp_dir, self.processed_dir, self.thumbnails_dir, self.streams_dir):
            d.mkdir(parents=True, exist_ok=True)
        logger.info("Storage directories initialized under %s", self.root)

    # ---------- Chemins ----------

    def chunk_dir(self, video_id: int) -> Path:
        return self.temp_dir / str(video_id)

    def chunk_path(self, video_id: int, chunk_index: int) -> Path:
        return self.chunk_dir(video_id) / f"chunk-{chunk_index}"

    def upload_path(self, video_id: int, filename: str) -> Path:
        return self.uploads_dir / f"{video_id}_{filename}"

    def processed_path(self, filename: str) -> Path:
        return self.processed_dir / filename

    def thumbnail_path(self, filename: str) -> Path:
        return self.thumbnails_dir / filename

    def stream_dir(self, video_id: int, kind: str) -> Path:
        return self.streams_dir / str(video_id) / kind

    # ---------- Lecture ----------

    def exists(self, path: Optional[PathLike]) -> bool:
        return bool(path) and Path(path).is_file()

    def file_size(self, path: PathLike) -> int:
        return Path(path).stat().st_size

    def read_bytes(self, path: PathLike) -> bytes:
        return Path(path).read_bytes()

    def iter_range(self, path: PathLike, start: int, end: int, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        """Itère sur les octets [start, end] par blocs (réponses de streaming)."""
        remaining = end - start + 1
        with open(path, "rb") as fh:
            fh.seek(start)
            while remaining > 0:
                buf = fh.read(min(chunk_size, remaining))
                if not buf:
                    break
                remaining -= len(buf)
                yield buf

    # ---------- Ecriture ----------

    def write_bytes_atomic(self, path: PathLike, data: bytes) -> Path:
        """
        Ecrit dans un fichier temporaire voisin puis remplace la cible :
        un lecteur concurrent voit l'ancien contenu ou le nouveau, jamais un mélange.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(f".{target.name}.{uuid4().hex}.tmp")
        try:
            tmp.write_bytes(data)
            os.replace(tmp, target)
        finally:
            if tmp.exists():
                tmp.unlink()
        return target

    # ---------- Suppression ----------

    def delete_file(self, path: Optional[PathLike]) -> bool:
        if not path:
            return False
        try:
            Path(path).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError:
            logger.exception("Failed to delete file %s", path)
            return False

    def delete_tree(self, path: PathLike) -> None:
        shutil.rmtree(path, ignore_errors=True)
