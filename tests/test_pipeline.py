import asyncio
import shutil
import threading

import pytest
from sqlmodel import Session

from app.db.repositories.processing_jobs import ProcessingJobRepository, ProcessingStepRepository
from app.db.repositories.videos import VideoRepository
from app.features.processing.backends import SimulatedTranscoder
from app.features.processing.pipeline import StepDefinition
from app.utils.storage import LocalStorage

from conftest import SAMPLE_VIDEO

pytestmark = pytest.mark.anyio

DEFAULT_STEPS = ["transcode", "thumbnail", "analysis", "hls", "dash"]


def _seed_video(platform, data: bytes = SAMPLE_VIDEO) -> int:
    with Session(platform.engine) as session:
        repo = VideoRepository(session)
        video = repo.create(title="clip", filename="clip.mp4", format="mp4", status="processing")
        path = platform.storage.write_bytes_atomic(platform.storage.upload_path(video.id, "clip.mp4"), data)
        repo.update(video, original_path=str(path), bytes=len(data))
        return video.id


def _load(platform, video_id: int):
    with Session(platform.engine) as session:
        video = VideoRepository(session).get(video_id)
        job = ProcessingJobRepository(session).latest_for_video(video_id)
        steps = ProcessingStepRepository(session).list_for_job(job.id) if job else []
        return video, job, list(steps)


def _drain(sub):
    items = []
    while not sub.queue.empty():
        items.append(sub.get_nowait())
    return items


async def _noop(ctx):
    return None


def _steps(*names, handler=_noop):
    return [StepDefinition(name, name.title(), 1.0, handler) for name in names]


async def test_video_ends_ready_with_all_outputs(settings, make_platform):
    platform = make_platform(settings)
    video_id = _seed_video(platform)

    assert platform.processor.enqueue(video_id) is True
    await platform.processor.join()

    video, job, steps = _load(platform, video_id)
    assert video.status == "ready"
    assert video.processing_progress == 100
    assert video.sensitivity_status == "safe"
    assert (video.duration, video.resolution, video.codec) == (120.0, "1280x720", "h264")
    for path in (video.processed_path, video.thumbnail_path, video.hls_path, video.dash_path):
        assert platform.storage.exists(path)

    assert job.status == "completed"
    assert job.progress == 100
    assert job.completed_at is not None
    assert [s.name for s in steps] == DEFAULT_STEPS
    assert all(s.status == "completed" and s.progress == 100 for s in steps)


async def test_flagged_analysis_flags_video(settings, make_platform):
    platform = make_platform(settings, sensitivity="flagged")
    video_id = _seed_video(platform)
    sub = platform.broadcaster.subscribe(video_id)

    platform.processor.enqueue(video_id)
    await platform.processor.join()

    video, job, _ = _load(platform, video_id)
    assert video.status == "flagged"
    assert video.sensitivity_score == 0.95
    assert video.sensitivity_reasons == ["Potential sensitive content detected"]
    assert job.status == "completed"

    completed = _drain(sub)[-1]
    assert completed["type"] == "processing:completed"
    assert completed["status"] == "flagged"
    assert completed["sensitivity"]["status"] == "flagged"


async def test_progress_is_monotonic_and_reaches_100_only_on_completion(settings, make_platform):
    platform = make_platform(settings)
    video_id = _seed_video(platform)
    sub = platform.broadcaster.subscribe(video_id)

    platform.processor.enqueue(video_id)
    await platform.processor.join()

    events = _drain(sub)
    assert events[0]["type"] == "processing:started"
    assert events[-1]["type"] == "processing:completed"

    totals = [e["total_progress"] for e in events if e["type"] == "processing:progress"]
    assert len(totals) == len(DEFAULT_STEPS) * settings.PIPELINE_PROGRESS_TICKS
    assert totals == sorted(totals)
    assert max(totals) < 100

    steps = [(e["step"], e["status"]) for e in events if e["type"] == "processing:step"]
    assert steps == [(name, status) for name in DEFAULT_STEPS for status in ("processing", "completed")]


async def test_failing_step_fails_job_and_leaves_later_steps_pending(settings, make_platform):
    async def boom(ctx):
        raise RuntimeError("codec exploded")

    steps = _steps("first") + [StepDefinition("second", "Second", 1.0, boom)] + _steps("third")
    platform = make_platform(settings, steps=steps)
    video_id = _seed_video(platform)
    sub = platform.broadcaster.subscribe(video_id)

    platform.processor.enqueue(video_id)
    await platform.processor.join()

    video, job, rows = _load(platform, video_id)
    assert video.status == "failed"
    assert job.status == "failed"
    assert job.error == "codec exploded"
    assert 0 < job.progress < 100
    assert [(r.name, r.status) for r in rows] == [
        ("first", "completed"),
        ("second", "failed"),
        ("third", "pending"),
    ]
    assert rows[1].error == "codec exploded"

    error = _drain(sub)[-1]
    assert error == {
        "type": "processing:error",
        "video_id": video_id,
        "step": "second",
        "message": "codec exploded",
    }


async def test_videos_are_processed_one_at_a_time(settings, make_platform):
    log = []

    async def record(ctx):
        log.append((ctx.video_id, "start"))
        await asyncio.sleep(0.01)
        log.append((ctx.video_id, "end"))

    platform = make_platform(settings, steps=_steps("a", "b", handler=record))
    first, second = _seed_video(platform), _seed_video(platform)

    platform.processor.enqueue(first)
    platform.processor.enqueue(second)
    assert platform.processor.pending == [first, second]
    await platform.processor.join()

    assert log == [(first, "start"), (first, "end")] * 2 + [(second, "start"), (second, "end")] * 2
    assert not platform.processor.is_processing


async def test_duplicate_enqueue_runs_twice_by_default(settings, make_platform):
    platform = make_platform(settings, steps=_steps("only"))
    video_id = _seed_video(platform)

    assert platform.processor.enqueue(video_id) is True
    assert platform.processor.enqueue(video_id) is True
    await platform.processor.join()

    with Session(platform.engine) as session:
        assert len(ProcessingJobRepository(session).list_for_video(video_id)) == 2


async def test_duplicate_enqueue_ignored_with_dedupe(make_settings, make_platform):
    platform = make_platform(make_settings(PIPELINE_DEDUPE_ENQUEUE=True), steps=_steps("only"))
    video_id = _seed_video(platform)

    assert platform.processor.enqueue(video_id) is True
    assert platform.processor.enqueue(video_id) is False
    await platform.processor.join()

    with Session(platform.engine) as session:
        assert len(ProcessingJobRepository(session).list_for_video(video_id)) == 1


async def test_step_timeout_fails_the_job(make_settings, make_platform):
    async def hang(ctx):
        await asyncio.sleep(5)

    settings = make_settings(PIPELINE_STEP_TIMEOUT_SECONDS=0.05)
    platform = make_platform(settings, steps=[StepDefinition("slow", "Slow", 1.0, hang)])
    video_id = _seed_video(platform)

    platform.processor.enqueue(video_id)
    await platform.processor.join()

    video, job, rows = _load(platform, video_id)
    assert video.status == "failed"
    assert job.error.startswith("Timed out")
    assert rows[0].status == "failed"


async def test_unknown_video_does_not_stop_the_worker(settings, make_platform):
    platform = make_platform(settings, steps=_steps("only"))
    video_id = _seed_video(platform)

    platform.processor.enqueue(9999)
    platform.processor.enqueue(video_id)
    await platform.processor.join()

    video, job, _ = _load(platform, video_id)
    assert video.status == "ready"
    assert job.status == "completed"


async def test_missing_original_fails_transcode(settings, make_platform):
    platform = make_platform(settings)
    video_id = _seed_video(platform)
    with Session(platform.engine) as session:
        repo = VideoRepository(session)
        repo.update(repo.get(video_id), original_path=None)

    platform.processor.enqueue(video_id)
    await platform.processor.join()

    video, job, rows = _load(platform, video_id)
    assert video.status == "failed"
    assert rows[0].name == "transcode" and rows[0].status == "failed"
    assert all(r.status == "pending" for r in rows[1:])


async def test_rerun_clears_previous_outputs_before_failing(settings, make_platform):
    class FailingOnRerun(SimulatedTranscoder):
        calls = 0

        async def transcode(self, video_id, source):
            FailingOnRerun.calls += 1
            if FailingOnRerun.calls > 1:
                raise RuntimeError("encoder crashed")
            return await super().transcode(video_id, source)

    transcoder = FailingOnRerun(LocalStorage(settings.STORAGE_ROOT))
    platform = make_platform(settings, sensitivity="flagged", transcoder=transcoder)
    video_id = _seed_video(platform)

    platform.processor.enqueue(video_id)
    await platform.processor.join()
    video, _, _ = _load(platform, video_id)
    assert video.status == "flagged" and video.hls_path and video.dash_path

    platform.processor.enqueue(video_id)
    await platform.processor.join()

    video, job, rows = _load(platform, video_id)
    assert video.status == "failed"
    assert job.error == "encoder crashed"
    assert [r.status for r in rows] == ["failed", "pending", "pending", "pending", "pending"]
    assert (video.processed_path, video.thumbnail_path, video.hls_path, video.dash_path) == (None,) * 4
    assert video.sensitivity_status == "pending"
    assert video.sensitivity_score is None
    assert video.sensitivity_reasons == []


async def test_transcode_copies_outside_the_event_loop(settings, make_platform, monkeypatch):
    loop_thread = threading.get_ident()
    seen = []
    copyfile = shutil.copyfile

    def recording_copyfile(src, dst):
        seen.append(threading.get_ident())
        return copyfile(src, dst)

    monkeypatch.setattr(shutil, "copyfile", recording_copyfile)
    platform = make_platform(settings)
    video_id = _seed_video(platform)

    platform.processor.enqueue(video_id)
    await platform.processor.join()

    assert _load(platform, video_id)[0].status == "ready"
    assert len(seen) == 1 and seen[0] != loop_thread
