import asyncio
import threading

import pytest
from sqlmodel import Session

from app.core.errors import ConflictError, ValidationError
from app.db.repositories.processing_jobs import ProcessingJobRepository
from app.db.repositories.videos import VideoRepository
from app.features.uploads.schemas import UploadInitIn
from app.features.uploads.services import UploadService

from conftest import SAMPLE_VIDEO

pytestmark = pytest.mark.anyio


@pytest.fixture
def platform(settings, make_platform):
    return make_platform(settings)


@pytest.fixture
def session(platform):
    with Session(platform.engine) as session:
        yield session


@pytest.fixture
def service(platform, session):
    return UploadService(
        repo=VideoRepository(session),
        assembler=platform.assembler,
        broadcaster=platform.broadcaster,
        processor=platform.processor,
        settings=platform.settings,
    )


def _drain(sub):
    items = []
    while not sub.queue.empty():
        items.append(sub.get_nowait())
    return items


async def test_last_chunk_assembles_and_enqueues(service, platform, session):
    init = service.init_upload(UploadInitIn(filename="clip.mp4", size=len(SAMPLE_VIDEO)))
    sub = platform.broadcaster.subscribe(init.video_id)
    half = len(SAMPLE_VIDEO) // 2

    first = await service.upload_chunk(
        video_id=init.video_id, chunk_index=1, total_chunks=2, data=SAMPLE_VIDEO[half:]
    )
    last = await service.upload_chunk(
        video_id=init.video_id, chunk_index=0, total_chunks=2, data=SAMPLE_VIDEO[:half]
    )

    assert (first.progress, first.complete) == (50.0, False)
    assert (last.progress, last.complete) == (100.0, True)
    assert platform.processor.pending == [init.video_id]

    video = VideoRepository(session).get(init.video_id)
    assert video.status == "processing"
    assert video.total_chunks == 2
    assert platform.storage.exists(video.original_path)

    assert [e["type"] for e in _drain(sub)] == ["upload:progress", "upload:progress", "upload:complete"]

    await platform.processor.join()
    session.expire_all()
    assert VideoRepository(session).get(init.video_id).status == "ready"


async def test_upload_limits(make_settings, make_platform):
    platform = make_platform(make_settings(MAX_UPLOAD_MB=1, MAX_CHUNK_MB=1))
    with Session(platform.engine) as session:
        service = UploadService(
            repo=VideoRepository(session),
            assembler=platform.assembler,
            broadcaster=platform.broadcaster,
            processor=platform.processor,
            settings=platform.settings,
        )
        with pytest.raises(ValidationError):
            service.init_upload(UploadInitIn(filename="big.mp4", size=2 * 1024 * 1024))

        init = service.init_upload(UploadInitIn(filename="ok.mp4", size=1024))
        with pytest.raises(ValidationError):
            await service.upload_chunk(
                video_id=init.video_id, chunk_index=0, total_chunks=2, data=b"x" * (1024 * 1024 + 1)
            )
        with pytest.raises(ValidationError):
            await service.upload_chunk(video_id=init.video_id, chunk_index=0, total_chunks=1, data=b"")


async def test_chunk_after_completion_conflicts(service, platform):
    init = service.init_upload(UploadInitIn(filename="clip.mp4", size=3))
    await service.upload_chunk(video_id=init.video_id, chunk_index=0, total_chunks=1, data=b"abc")

    with pytest.raises(ConflictError):
        await service.upload_chunk(video_id=init.video_id, chunk_index=0, total_chunks=1, data=b"abc")
    await platform.processor.join()


async def test_assembly_runs_outside_the_event_loop(service, platform, monkeypatch):
    loop_thread = threading.get_ident()
    seen = []
    assemble = platform.assembler.assemble_chunks

    def recording_assemble(*args, **kwargs):
        seen.append(threading.get_ident())
        return assemble(*args, **kwargs)

    monkeypatch.setattr(platform.assembler, "assemble_chunks", recording_assemble)

    init = service.init_upload(UploadInitIn(filename="clip.mp4", size=len(SAMPLE_VIDEO)))
    result = await service.upload_chunk(
        video_id=init.video_id, chunk_index=0, total_chunks=1, data=SAMPLE_VIDEO
    )

    assert result.complete is True
    assert len(seen) == 1 and seen[0] != loop_thread
    await platform.processor.join()


async def test_concurrent_final_chunks_assemble_once(service, platform, session):
    init = service.init_upload(UploadInitIn(filename="clip.mp4", size=len(SAMPLE_VIDEO)))
    sub = platform.broadcaster.subscribe(init.video_id)
    half = len(SAMPLE_VIDEO) // 2

    await asyncio.gather(
        service.upload_chunk(video_id=init.video_id, chunk_index=0, total_chunks=2, data=SAMPLE_VIDEO[:half]),
        service.upload_chunk(video_id=init.video_id, chunk_index=1, total_chunks=2, data=SAMPLE_VIDEO[half:]),
    )
    await platform.processor.join()

    types = [e["type"] for e in _drain(sub) if e["type"].startswith("upload:")]
    assert types.count("upload:complete") == 1
    assert len(ProcessingJobRepository(session).list_for_video(init.video_id)) == 1

    session.expire_all()
    video = VideoRepository(session).get(init.video_id)
    assert video.status == "ready"
    assert platform.storage.read_bytes(video.original_path) == SAMPLE_VIDEO
