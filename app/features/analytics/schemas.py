from typing import Any, Dict, Optional
from pydantic import BaseModel, Field as PydField


class TrackEventIn(BaseModel):
    video_id: Optional[int] = None
    event: Optional[str] = PydField(None, description="view | play | pause | complete | buffer")
    details: Dict[str, Any] = {}


class TrackEventOut(BaseModel):
    success: bool = True
    id: int


class VideoAnalyticsOut(BaseModel):
    video_id: int
    views: int
    events: Dict[str, int]
