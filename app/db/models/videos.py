from typing import List, Optional

from sqlmodel import Field
from sqlalchemy import Column, JSON

from .base import BaseModelDB


class Video(BaseModelDB, table=True):
    """Vidéo uploadée par chunks puis traitée par le pipeline."""

    owner_id: Optional[int] = Field(default=None, index=True, description="Propriétaire de la vidéo")
    title: str = Field(description="Titre affiché")
    description: str = Field(default="")
    filename: str = Field(description="Nom de fichier d'origine (nettoyé)")
    mime_type: str = Field(default="application/octet-stream", description="Type MIME (video/mp4, video/webm, etc.)")
    format: str = Field(description="Extension du conteneur (mp4, mov...)")
    bytes: int = Field(default=0, description="Taille en octets")
    sha256: Optional[str] = Field(default=None, description="Hash du fichier assemblé")

    status: str = Field(default="uploading", index=True, description="uploading | processing | ready | failed | flagged")
    processing_progress: float = Field(default=0.0)
    total_chunks: Optional[int] = Field(default=None, description="Fixé par le premier chunk reçu")

    sensitivity_status: str = Field(default="pending", description="pending | safe | flagged")
    sensitivity_score: Optional[float] = Field(default=None, description="Confiance de l'analyse (0-1)")
    sensitivity_reasons: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    # Chemins de stockage, renseignés au fil du pipeline
    original_path: Optional[str] = None
    processed_path: Optional[str] = None
    thumbnail_path: Optional[str] = None
    hls_path: Optional[str] = None
    dash_path: Optional[str] = None

    # Métadonnées (étape transcode)
    duration: Optional[float] = None
    resolution: Optional[str] = None
    bitrate: Optional[int] = None
    codec: Optional[str] = None

    views: int = Field(default=0)
