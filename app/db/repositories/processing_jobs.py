from typing import List, Optional, Sequence, Tuple
from sqlmodel import select
from sqlalchemy import delete

from app.db.repositories.base import BaseRepository
from app.db.models.processing_jobs import ProcessingJob, ProcessingStep


class ProcessingJobRepository(BaseRepository[ProcessingJob]):
    """Jobs du pipeline. Ecrits uniquement par le worker, lus partout ailleurs."""
    model = ProcessingJob

    def create_with_steps(
        self,
        *,
        video_id: int,
        steps: Sequence[Tuple[str, str]],
    ) -> Tuple[ProcessingJob, List[ProcessingStep]]:
        """
        Crée un job + une ligne 'pending' par étape (name, label), dans une seule transaction.
        """
        job = self.create(commit=False, video_id=video_id, status="pending", progress=0.0)
        rows = []
        for position, (name, label) in enumerate(steps):
            row = ProcessingStep(job_id=job.id, position=position, name=name, label=label)
            self.session.add(row)
            rows.append(row)
        self.session.commit()
        self.session.refresh(job)
        for row in rows:
            self.session.refresh(row)
        return job, rows

    def latest_for_video(self, video_id: int) -> Optional[ProcessingJob]:
        stmt = (
            select(ProcessingJob)
            .where(ProcessingJob.video_id == video_id)
            .order_by(ProcessingJob.created_at.desc(), ProcessingJob.id.desc())
        )
        return self.session.exec(stmt).first()

    def list_for_video(self, video_id: int) -> Sequence[ProcessingJob]:
        stmt = (
            select(ProcessingJob)
            .where(ProcessingJob.video_id == video_id)
            .order_by(ProcessingJob.id.asc())
        )
        return self.session.exec(stmt).all()

    def list_recent(self, limit: int = 10, status: Optional[str] = None) -> Sequence[ProcessingJob]:
        stmt = select(ProcessingJob)
        if status is not None:
            stmt = stmt.where(ProcessingJob.status == status)
        stmt = stmt.order_by(ProcessingJob.id.desc()).limit(limit)
        return self.session.exec(stmt).all()

    def delete_for_video(self, video_id: int, *, commit: bool = True) -> None:
        job_ids = [j.id for j in self.list_for_video(video_id)]
        if job_ids:
            self.session.exec(delete(ProcessingStep).where(ProcessingStep.job_id.in_(job_ids)))
            self.session.exec(delete(ProcessingJob).where(ProcessingJob.id.in_(job_ids)))
        if commit:
            self.session.commit()


class ProcessingStepRepository(BaseRepository[ProcessingStep]):
    model = ProcessingStep

    def list_for_job(self, job_id: int) -> Sequence[ProcessingStep]:
        stmt = (
            select(ProcessingStep)
            .where(ProcessingStep.job_id == job_id)
            .order_by(ProcessingStep.position.asc())
        )
        return self.session.exec(stmt).all()
