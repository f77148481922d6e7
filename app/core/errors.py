"""
➡️ But : Erreurs métier partagées par les services.

Les services lèvent ces exceptions, les routers les traduisent en HTTPException.

🔹 Avantages :

Code métier découplé du web.

Les tests vérifient les erreurs sans passer par FastAPI.
"""

from typing import List, Optional


class PlatformError(Exception):
    """Base de toutes les erreurs métier."""


class ValidationError(PlatformError, ValueError):
    """Entrée invalide (extension, champs manquants, index de chunk...)."""


class NotFoundError(PlatformError, LookupError):
    """Vidéo / job introuvable."""


class ConflictError(PlatformError):
    """Conflit d'état (transition interdite, upload déjà terminé...)."""


class MissingChunkError(ConflictError):
    """Assemblage demandé alors que des chunks manquent."""

    def __init__(self, video_id: int, missing: List[int]):
        self.video_id = video_id
        self.missing = missing
        preview = ", ".join(str(i) for i in missing[:10])
        super().__init__(f"Chunks manquants pour la vidéo {video_id}: {preview}")


class NotReadyError(PlatformError):
    """Vidéo pas encore prête pour la lecture."""


class SensitiveContentError(PlatformError):
    """Contenu signalé : lecture refusée tant qu'un admin n'a pas validé."""

    def __init__(self, score: Optional[float]):
        self.score = score
        super().__init__("Video contains sensitive content and requires admin approval")


class RangeNotSatisfiableError(PlatformError):
    def __init__(self, size: int):
        self.size = size
        super().__init__(f"Range non satisfaisable (taille {size})")


class StepExecutionError(PlatformError):
    """Une étape du pipeline a échoué (enregistrée sur le job, jamais exposée en HTTP)."""

    def __init__(self, step: str, message: str):
        self.step = step
        self.message = message
        super().__init__(f"{step}: {message}")
