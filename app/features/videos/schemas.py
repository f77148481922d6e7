from typing import Annotated, List, Optional
from datetime import datetime
from pydantic import AfterValidator, BaseModel

from app.db.models.base import as_utc

# SQLite relit les dates sans fuseau : elles sont en UTC
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


# ---------- OUT ----------

class VideoOut(BaseModel):
    id: int
    owner_id: Optional[int] = None
    title: str
    description: str
    filename: str
    mime_type: str
    format: str
    bytes: int
    status: str
    processing_progress: float
    sensitivity_status: str
    sensitivity_score: Optional[float] = None
    sensitivity_reasons: List[str] = []
    duration: Optional[float] = None
    resolution: Optional[str] = None
    bitrate: Optional[int] = None
    codec: Optional[str] = None
    views: int
    thumbnail_url: Optional[str] = None
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None

    model_config = {"from_attributes": True}


class VideoList(BaseModel):
    items: List[VideoOut]
    total: int
    offset: int
    limit: int


class VideoStatusOut(BaseModel):
    id: int
    title: str
    status: str
    sensitivity_status: str
    sensitivity_score: Optional[float] = None
    processing_progress: float

    model_config = {"from_attributes": True}


class JobOut(BaseModel):
    id: int
    type: str
    status: str
    progress: float
    current_step: Optional[str] = None
    error: Optional[str] = None
    started_at: Optional[UtcDatetime] = None
    completed_at: Optional[UtcDatetime] = None

    model_config = {"from_attributes": True}


class StepOut(BaseModel):
    type: str
    label: str
    status: str
    progress: float
    error: Optional[str] = None
    started_at: Optional[UtcDatetime] = None
    completed_at: Optional[UtcDatetime] = None


class ProcessingStatusOut(BaseModel):
    video: VideoStatusOut
    job: Optional[JobOut] = None
    jobs: List[StepOut] = []


class ReprocessOut(BaseModel):
    video_id: int
    status: str
    queued: bool
