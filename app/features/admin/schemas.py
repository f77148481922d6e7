from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel

from app.features.videos.schemas import JobOut


class JobAdminOut(JobOut):
    video_id: int


class QueueOut(BaseModel):
    pending: List[int]
    current_video_id: Optional[int] = None
    is_processing: bool


class StatsOut(BaseModel):
    total_videos: int
    uploading: int
    processing: int
    ready: int
    flagged: int
    failed: int
    pending_review: int
    total_views: int
    storage_used: int
    recent_jobs: List[JobAdminOut]
    queue: QueueOut


class SensitivityUpdateIn(BaseModel):
    sensitivity_status: Literal["safe", "flagged"]


class SensitivityUpdateOut(BaseModel):
    id: int
    status: str
    sensitivity_status: str


class CDNEntryOut(BaseModel):
    path: str
    hits: int
    cached_at: datetime
    content_type: str
    bytes: int


class CDNStatsOut(BaseModel):
    size: int
    max_size: int
    hits: int
    misses: int
    evictions: int
    entries: List[CDNEntryOut]


class CDNInvalidateOut(BaseModel):
    invalidated: int
