"""
Données de démo : uploade quelques vidéos factices par chunks puis attend la fin du pipeline.

Usage : python -m scripts.seed [--count 3] [--chunks 4]
"""

import argparse
import asyncio
import logging
import os

from sqlmodel import Session

from app.core.config import settings
from app.core.logging import configure_logging
from app.core.platform import build_platform
from app.db.repositories.videos import VideoRepository
from app.features.uploads.schemas import UploadInitIn
from app.features.uploads.services import UploadService

logger = logging.getLogger("app.seed")

# En-tête "ftyp" : filetype reconnaît un MP4
_MP4_HEADER = b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom"


def _fake_video(size: int) -> bytes:
    return _MP4_HEADER + os.urandom(max(size - len(_MP4_HEADER), 0))


async def run_seed(count: int, chunks: int):
    platform = build_platform(settings)
    platform.startup()

    with Session(platform.engine) as session:
        svc = UploadService(
            repo=VideoRepository(session),
            assembler=platform.assembler,
            broadcaster=platform.broadcaster,
            processor=platform.processor,
            settings=settings,
        )
        for i in range(1, count + 1):
            data = _fake_video(256 * 1024)
            init = svc.init_upload(
                UploadInitIn(filename=f"demo-{i}.mp4", size=len(data), title=f"Vidéo de démo {i}")
            )
            step = -(-len(data) // chunks)
            for index in range(chunks):
                await svc.upload_chunk(
                    video_id=init.video_id,
                    chunk_index=index,
                    total_chunks=chunks,
                    data=data[index * step:(index + 1) * step],
                )
            logger.info("Seeded video %s", init.video_id)

    await platform.processor.join()
    await platform.shutdown()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed de vidéos de démo")
    parser.add_argument("--count", type=int, default=3)
    parser.add_argument("--chunks", type=int, default=4)
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL)
    asyncio.run(run_seed(args.count, args.chunks))
