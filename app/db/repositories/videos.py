from typing import Optional, Sequence
from sqlmodel import select, func
from sqlalchemy import update

from app.db.repositories.base import BaseRepository
from app.db.models.videos import Video


class VideoRepository(BaseRepository[Video]):
    """CRUD Vidéos + requêtes spécifiques."""
    model = Video

    def list_filtered(
        self,
        *,
        offset: int = 0,
        limit: int = 100,
        owner_id: Optional[int] = None,
        status: Optional[str] = None,
        newest_first: bool = True,
    ) -> Sequence[Video]:
        stmt = select(Video)
        if owner_id is not None:
            stmt = stmt.where(Video.owner_id == owner_id)
        if status is not None:
            stmt = stmt.where(Video.status == status)
        order = Video.created_at.desc() if newest_first else Video.created_at.asc()
        stmt = stmt.order_by(order, Video.id.desc()).offset(offset).limit(limit)
        return self.session.exec(stmt).all()

    def count_by_status(self, status: str) -> int:
        return self.session.exec(
            select(func.count(Video.id)).where(Video.status == status)
        ).one()

    def count_by_sensitivity(self, sensitivity_status: str) -> int:
        return self.session.exec(
            select(func.count(Video.id)).where(Video.sensitivity_status == sensitivity_status)
        ).one()

    def total_views(self) -> int:
        return self.session.exec(select(func.coalesce(func.sum(Video.views), 0))).one()

    def total_bytes(self) -> int:
        return self.session.exec(select(func.coalesce(func.sum(Video.bytes), 0))).one()

    def increment_views(self, video_id: int) -> None:
        """Incrément atomique côté SQL (pas de lecture-modification-écriture)."""
        self.session.exec(
            update(Video).where(Video.id == video_id).values(views=Video.views + 1)
        )
        self.session.commit()

    def count_filtered(self, *, owner_id: Optional[int] = None, status: Optional[str] = None) -> int:
        stmt = select(func.count(Video.id))
        if owner_id is not None:
            stmt = stmt.where(Video.owner_id == owner_id)
        if status is not None:
            stmt = stmt.where(Video.status == status)
        return self.session.exec(stmt).one()
