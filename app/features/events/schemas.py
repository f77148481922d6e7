from typing import List, Literal, Optional
from pydantic import BaseModel


class SensitivityOut(BaseModel):
    status: str
    confidence: Optional[float] = None
    reasons: List[str] = []


# ---------- Pipeline ----------

class ProcessingStartedEvent(BaseModel):
    type: Literal["processing:started"] = "processing:started"
    video_id: int
    job_id: int


class ProcessingStepEvent(BaseModel):
    type: Literal["processing:step"] = "processing:step"
    video_id: int
    step: str
    label: str
    status: str


class ProcessingProgressEvent(BaseModel):
    type: Literal["processing:progress"] = "processing:progress"
    video_id: int
    step: str
    label: str
    step_progress: float
    total_progress: float


class ProcessingCompletedEvent(BaseModel):
    type: Literal["processing:completed"] = "processing:completed"
    video_id: int
    status: str
    sensitivity: SensitivityOut


class ProcessingErrorEvent(BaseModel):
    type: Literal["processing:error"] = "processing:error"
    video_id: int
    step: Optional[str] = None
    message: str


# ---------- Upload ----------

class UploadProgressEvent(BaseModel):
    type: Literal["upload:progress"] = "upload:progress"
    video_id: int
    progress: float
    received: int
    total_chunks: int


class UploadCompleteEvent(BaseModel):
    type: Literal["upload:complete"] = "upload:complete"
    video_id: int
    message: str = "Upload complete, processing started"
