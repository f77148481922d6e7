import time
from contextlib import ExitStack
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.platform import build_platform
from app.features.processing.backends import SensitivityResult, VideoMetadata
from app.main import create_app

API = "/api/v1"

# En-tête "ftyp" : filetype reconnaît un MP4
MP4_HEADER = b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom"
SAMPLE_VIDEO = MP4_HEADER + bytes(range(256)) * 40

TERMINAL_STATUSES = ("ready", "flagged", "failed")


class FixedMetadataBackend:
    async def extract_metadata(self, path: str) -> VideoMetadata:
        return VideoMetadata(duration=120.0, resolution="1280x720", bitrate=2500, codec="h264")


class FixedSensitivityBackend:
    def __init__(self, status: str = "safe", confidence: float = 0.95):
        self.status = status
        self.confidence = confidence

    async def analyze_sensitivity(self, path: str) -> SensitivityResult:
        reasons = ["Potential sensitive content detected"] if self.status == "flagged" else []
        return SensitivityResult(status=self.status, confidence=self.confidence, reasons=reasons)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def make_settings(tmp_path):
    def _make(**overrides) -> Settings:
        values = dict(
            ENV="test",
            LOG_LEVEL="WARNING",
            DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
            DB_ECHO=False,
            STORAGE_ROOT=str(tmp_path / "storage"),
            PIPELINE_TIME_SCALE=0.0,
            PIPELINE_PROGRESS_TICKS=4,
        )
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def make_platform():
    built = []

    def _make(settings: Settings, *, sensitivity: str = "safe", **overrides):
        overrides.setdefault("metadata", FixedMetadataBackend())
        overrides.setdefault("sensitivity", FixedSensitivityBackend(sensitivity))
        platform = build_platform(settings, **overrides)
        platform.startup()
        built.append(platform)
        return platform

    yield _make
    for platform in built:
        platform.engine.dispose()


@pytest.fixture
def make_client(make_settings, make_platform):
    stack = ExitStack()

    def _make(*, sensitivity: str = "safe", **overrides) -> TestClient:
        settings = make_settings(**overrides)
        app = create_app(settings, platform=make_platform(settings, sensitivity=sensitivity))
        return stack.enter_context(TestClient(app))

    yield _make
    stack.close()


@pytest.fixture
def client(make_client):
    return make_client()


def upload_video(
    client: TestClient,
    data: bytes = SAMPLE_VIDEO,
    *,
    chunks: int = 3,
    filename: str = "clip.mp4",
    order: Optional[List[int]] = None,
    title: Optional[str] = None,
) -> int:
    resp = client.post(
        f"{API}/uploads/init",
        json={"filename": filename, "size": len(data), "mime_type": "video/mp4", "title": title},
    )
    assert resp.status_code == 201, resp.text
    video_id = resp.json()["video_id"]

    step = -(-len(data) // chunks)
    for index in order if order is not None else range(chunks):
        resp = client.post(
            f"{API}/uploads/chunk",
            data={"video_id": str(video_id), "chunk_index": str(index), "total_chunks": str(chunks)},
            files={"chunk": ("blob", data[index * step:(index + 1) * step], "application/octet-stream")},
        )
        assert resp.status_code == 200, resp.text
    return video_id


def wait_processed(client: TestClient, video_id: int, timeout: float = 10.0) -> dict:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(f"{API}/videos/{video_id}/status").json()
        if body["video"]["status"] in TERMINAL_STATUSES:
            return body
        time.sleep(0.02)
    raise AssertionError(f"video {video_id} still processing after {timeout}s")
