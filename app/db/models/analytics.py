from typing import Any, Dict

from sqlmodel import Field
from sqlalchemy import Column, JSON

from .base import BaseModelDB


class AnalyticsEvent(BaseModelDB, table=True):
    video_id: int = Field(index=True)
    event: str = Field(description="view | play | pause | complete | buffer")
    details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
