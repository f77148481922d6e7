from datetime import timezone

from sqlmodel import Session

from app.db.models.base import utcnow
from app.db.repositories.processing_jobs import ProcessingJobRepository, ProcessingStepRepository
from app.db.repositories.videos import VideoRepository
from app.features.videos.schemas import JobOut, VideoOut


def test_utcnow_is_timezone_aware():
    assert utcnow().tzinfo is timezone.utc


def test_video_is_inserted_then_read_back(settings, make_platform):
    platform = make_platform(settings)
    with Session(platform.engine) as session:
        video = VideoRepository(session).create(title="t", filename="a.mp4", format="mp4", status="uploading")
        video_id = video.id

    with Session(platform.engine) as session:
        repo = VideoRepository(session)
        video = repo.get(video_id)
        assert (video.title, video.filename, video.status) == ("t", "a.mp4", "uploading")

        updated = repo.update(video, status="processing")
        assert updated.status == "processing"

        out = VideoOut.model_validate(updated)
        assert out.created_at.tzinfo is not None
        assert out.created_at.utcoffset().total_seconds() == 0
        assert out.updated_at >= out.created_at


def test_job_dates_are_utc_in_output(settings, make_platform):
    platform = make_platform(settings)
    with Session(platform.engine) as session:
        video = VideoRepository(session).create(title="t", filename="a.mp4", format="mp4", status="processing")
        video_id = video.id
        jobs = ProcessingJobRepository(session)
        job, _ = jobs.create_with_steps(video_id=video_id, steps=[("transcode", "Transcodage")])
        jobs.update(job, status="processing", started_at=utcnow())

    with Session(platform.engine) as session:
        job = ProcessingJobRepository(session).latest_for_video(video_id)
        out = JobOut.model_validate(job)
        assert out.started_at.tzinfo is not None
        assert out.completed_at is None
        assert [s.name for s in ProcessingStepRepository(session).list_for_job(job.id)] == ["transcode"]
