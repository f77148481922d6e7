from typing import Optional, Sequence
from sqlmodel import select, func
from sqlalchemy import delete

from app.db.repositories.base import BaseRepository
from app.db.models.analytics import AnalyticsEvent


class AnalyticsRepository(BaseRepository[AnalyticsEvent]):
    model = AnalyticsEvent

    def list_for_video(self, video_id: int, event: Optional[str] = None) -> Sequence[AnalyticsEvent]:
        stmt = select(AnalyticsEvent).where(AnalyticsEvent.video_id == video_id)
        if event is not None:
            stmt = stmt.where(AnalyticsEvent.event == event)
        return self.session.exec(stmt.order_by(AnalyticsEvent.id.asc())).all()

    def count_for_video(self, video_id: int, event: str) -> int:
        return self.session.exec(
            select(func.count(AnalyticsEvent.id))
            .where(AnalyticsEvent.video_id == video_id, AnalyticsEvent.event == event)
        ).one()

    def delete_for_video(self, video_id: int, *, commit: bool = True) -> None:
        self.session.exec(delete(AnalyticsEvent).where(AnalyticsEvent.video_id == video_id))
        if commit:
            self.session.commit()
