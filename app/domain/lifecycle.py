"""
➡️ But : Décrire le cycle de vie d'une vidéo et de ses jobs de traitement.

Statuts (valeurs stockées en DB sous forme de chaînes) + table des transitions autorisées.

🔹 Avantages :

Une seule source de vérité pour la machine à états.

Les services / le pipeline appellent ensure_transition() au lieu de dupliquer les règles.
"""

from enum import Enum
from typing import Dict, FrozenSet

from app.core.errors import ConflictError


class VideoStatus(str, Enum):
    UPLOADING = "uploading"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"
    FLAGGED = "flagged"


class SensitivityStatus(str, Enum):
    PENDING = "pending"
    SAFE = "safe"
    FLAGGED = "flagged"


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# Les étapes partagent les statuts des jobs
StepStatus = JobStatus


ANALYTICS_EVENTS: FrozenSet[str] = frozenset({"view", "play", "pause", "complete", "buffer"})


_TRANSITIONS: Dict[VideoStatus, FrozenSet[VideoStatus]] = {
    VideoStatus.UPLOADING: frozenset({VideoStatus.PROCESSING, VideoStatus.FAILED}),
    # processing -> processing : doublon en file (nouvelle exécution)
    VideoStatus.PROCESSING: frozenset(
        {VideoStatus.PROCESSING, VideoStatus.READY, VideoStatus.FLAGGED, VideoStatus.FAILED}
    ),
    # ready <-> flagged : modération admin
    VideoStatus.READY: frozenset({VideoStatus.PROCESSING, VideoStatus.FLAGGED}),
    VideoStatus.FLAGGED: frozenset({VideoStatus.PROCESSING, VideoStatus.READY}),
    VideoStatus.FAILED: frozenset({VideoStatus.PROCESSING}),
}


def can_transition(current: str, target: str) -> bool:
    return VideoStatus(target) in _TRANSITIONS[VideoStatus(current)]


def ensure_transition(current: str, target: str) -> None:
    """Lève ConflictError si la transition current -> target est interdite."""
    if not can_transition(current, target):
        raise ConflictError(f"Transition interdite: {current} -> {target}")
