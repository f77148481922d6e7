from pathlib import PurePath
from typing import Iterable, Optional, Set, Tuple
import filetype


# Allow-list MIME (détection réelle du contenu)
ALLOWED_VIDEO_MIME: Set[str] = {
    "video/mp4",
    "video/webm",
    "video/ogg",
    "video/quicktime",   # mov
    "video/x-matroska",  # mkv (selon filetype)
    "video/x-msvideo",   # avi
}

# MIME par extension, utilisé quand le client n'en fournit pas et que filetype ne reconnaît rien
EXTENSION_MIME = {
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "avi": "video/x-msvideo",
    "mkv": "video/x-matroska",
    "webm": "video/webm",
}

# Types de contenu des formats de streaming
STREAM_CONTENT_TYPES = {
    "hls": "application/vnd.apple.mpegurl",
    "dash": "application/dash+xml",
}

THUMBNAIL_CONTENT_TYPE = "image/jpeg"

# filetype n'a besoin que des premiers octets
SNIFF_BYTES = 261


def sanitize_filename(filename: str) -> str:
    """Garde uniquement le nom de base (pas de chemin, pas de séparateurs)."""
    name = PurePath(filename.replace("\\", "/")).name.strip()
    return name.replace("\x00", "")


def validate_video_filename(filename: Optional[str], *, allowed_extensions: Iterable[str]) -> Tuple[str, str]:
    """
    Retourne (nom_nettoyé, extension_sans_point).
    Lève ValueError si le nom est vide ou l'extension non autorisée.
    """
    if not filename or not filename.strip():
        raise ValueError("Nom de fichier requis")
    name = sanitize_filename(filename)
    if "." not in name:
        raise ValueError("Extension manquante")
    ext = name.rsplit(".", 1)[1].lower()
    allowed = [e.lower() for e in allowed_extensions]
    if ext not in allowed:
        pretty = ", ".join(e.upper() for e in allowed)
        raise ValueError(f"Type de fichier invalide. Autorisés : {pretty}")
    return name, ext


def detect_mime(head: bytes) -> Optional[str]:
    """
    Détecte le type réel via 'filetype' à partir des premiers octets.
    Retourne None si le contenu n'est pas reconnu.
    """
    kind = filetype.guess(head)
    return kind.mime if kind else None

