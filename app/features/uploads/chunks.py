"""
➡️ But : Recevoir les chunks d'un upload (dans n'importe quel ordre) et les assembler en un fichier.

save_chunk() : écrit un slot (video_id, index). Ré-uploader un index remplace son contenu.

assemble_chunks() : exige tous les slots 0..total-1, concatène dans l'ordre, nettoie les chunks.

🔹 Avantages :

Les slots sont indépendants : des uploads concurrents de chunks différents ne se marchent pas dessus.

Aucun fichier final partiel : on écrit dans un .part, renommé seulement en fin d'assemblage.
"""

import hashlib
import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Set

from app.core.errors import MissingChunkError, ValidationError
from app.utils.media_files import SNIFF_BYTES, detect_mime
from app.utils.storage import LocalStorage

logger = logging.getLogger(__name__)

_CHUNK_NAME = re.compile(r"^chunk-(\d+)$")
_COPY_BUFFER = 1024 * 1024


@dataclass(frozen=True)
class AssembledFile:
    path: Path
    size: int
    sha256: str
    detected_mime: Optional[str]


class ChunkAssembler:
    def __init__(self, storage: LocalStorage):
        self.storage = storage
        self._locks: Dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._assembling: Set[int] = set()

    def _lock_for(self, video_id: int) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(video_id, threading.Lock())

    # ---------- Réception ----------

    def save_chunk(self, video_id: int, chunk_index: int, data: bytes) -> int:
        """Persiste un chunk et retourne le nombre de chunks distincts reçus."""
        if chunk_index < 0:
            raise ValidationError("chunk_index doit être >= 0")
        self.storage.write_bytes_atomic(self.storage.chunk_path(video_id, chunk_index), data)
        return len(self.received_chunks(video_id))

    def received_chunks(self, video_id: int) -> Set[int]:
        chunk_dir = self.storage.chunk_dir(video_id)
        if not chunk_dir.is_dir():
            return set()
        indices = set()
        for entry in chunk_dir.iterdir():
            m = _CHUNK_NAME.match(entry.name)
            if m and entry.is_file():
                indices.add(int(m.group(1)))
        return indices

    def missing_chunks(self, video_id: int, total_chunks: int) -> List[int]:
        received = self.received_chunks(video_id)
        return [i for i in range(total_chunks) if i not in received]

    # ---------- Assemblage ----------

    def claim_assembly(self, video_id: int) -> bool:
        """Réserve l'assemblage d'une vidéo ; False si une autre requête le détient déjà."""
        with self._locks_guard:
            if video_id in self._assembling:
                return False
            self._assembling.add(video_id)
            return True

    def release_assembly(self, video_id: int) -> None:
        with self._locks_guard:
            self._assembling.discard(video_id)

    def assemble_chunks(self, video_id: int, total_chunks: int, final_filename: str) -> AssembledFile:
        """
        Concatène les chunks 0..total-1 dans l'ordre vers uploads/<video_id>_<final_filename>.
        Lève MissingChunkError (chunks conservés) si un slot manque.
        """
        if total_chunks <= 0:
            raise ValidationError("total_chunks doit être >= 1")

        with self._lock_for(video_id):
            missing = self.missing_chunks(video_id, total_chunks)
            if missing:
                raise MissingChunkError(video_id, missing)

            target = self.storage.upload_path(video_id, final_filename)
            target.parent.mkdir(parents=True, exist_ok=True)
            partial = target.with_name(target.name + ".part")
            digest = hashlib.sha256()
            size = 0
            head = b""
            try:
                with open(partial, "wb") as out:
                    for index in range(total_chunks):
                        with open(self.storage.chunk_path(video_id, index), "rb") as chunk:
                            while True:
                                buf = chunk.read(_COPY_BUFFER)
                                if not buf:
                                    break
                                if len(head) < SNIFF_BYTES:
                                    head += buf[: SNIFF_BYTES - len(head)]
                                digest.update(buf)
                                out.write(buf)
                                size += len(buf)
                partial.replace(target)
            except BaseException:
                self.storage.delete_file(partial)
                raise
            finally:
                self.storage.delete_tree(self.storage.chunk_dir(video_id))

        logger.info("Assembled %d chunks for video %s (%d bytes)", total_chunks, video_id, size)
        return AssembledFile(path=target, size=size, sha256=digest.hexdigest(), detected_mime=detect_mime(head))

    def discard(self, video_id: int) -> None:
        """Abandonne un upload en cours (chunks supprimés)."""
        with self._lock_for(video_id):
            self.storage.delete_tree(self.storage.chunk_dir(video_id))
        with self._locks_guard:
            self._locks.pop(video_id, None)
