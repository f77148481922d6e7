from typing import Optional
from pydantic import BaseModel


class StreamFormatsOut(BaseModel):
    hls: str
    dash: str


class ManifestOut(BaseModel):
    id: int
    title: str
    description: str
    duration: Optional[float] = None
    resolution: Optional[str] = None
    thumbnail: Optional[str] = None
    formats: StreamFormatsOut
    sensitivity_status: str
    views: int
