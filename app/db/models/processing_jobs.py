from datetime import datetime
from typing import Optional

from sqlmodel import Field
from sqlalchemy import Column, ForeignKey, Integer

from .base import BaseModelDB


class ProcessingJob(BaseModelDB, table=True):
    """Exécution complète du pipeline pour une vidéo (une ligne par passage)."""

    video_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("video.id"),
            nullable=False,
            index=True,
        ),
    )
    type: str = Field(default="pipeline")
    status: str = Field(default="pending", description="pending | processing | completed | failed")
    progress: float = Field(default=0.0, description="Progression globale 0-100")
    current_step: Optional[str] = None
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ProcessingStep(BaseModelDB, table=True):
    """Etape nommée d'un job, avec sa propre progression."""

    job_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("processingjob.id"),
            nullable=False,
            index=True,
        ),
    )
    position: int = Field(description="Ordre d'exécution dans le job")
    name: str
    label: str = ""
    status: str = Field(default="pending")
    progress: float = Field(default=0.0)
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
