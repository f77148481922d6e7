"""
➡️ But : Construire les composants partagés de l'application, une seule fois, sans singleton global.

build_platform(settings) crée :

engine + session_factory (SQLModel)

stockage local, assembleur de chunks

cache CDN, broadcaster d'événements

backends (métadonnées, sensibilité, transcodage) et le VideoProcessor

create_app() range le résultat dans app.state.platform ; les dépendances FastAPI le lisent depuis la requête.

🔹 Avantages :

Chaque test construit sa propre plateforme (DB, dossier de stockage, backends factices).

Aucun état caché entre deux applications.
"""

import logging
import random
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy.engine import Engine

from app.core.config import Settings
from app.db.session import SessionFactory, build_engine, init_db, session_factory
from app.features.cdn.cache import CDNCache
from app.features.events.broadcaster import EventBroadcaster
from app.features.processing.backends import (
    MetadataBackend,
    SensitivityBackend,
    SimulatedMetadataBackend,
    SimulatedSensitivityBackend,
    SimulatedTranscoder,
    TranscodingBackend,
)
from app.features.processing.pipeline import StepDefinition, VideoProcessor
from app.features.processing.steps import build_default_steps
from app.features.uploads.chunks import ChunkAssembler
from app.utils.storage import LocalStorage

logger = logging.getLogger(__name__)


@dataclass
class Platform:
    settings: Settings
    engine: Engine
    session_factory: SessionFactory
    storage: LocalStorage
    assembler: ChunkAssembler
    cdn: CDNCache
    broadcaster: EventBroadcaster
    metadata: MetadataBackend
    sensitivity: SensitivityBackend
    transcoder: TranscodingBackend
    processor: VideoProcessor

    def startup(self) -> None:
        init_db(self.engine)
        self.storage.ensure_dirs()

    async def shutdown(self) -> None:
        await self.processor.shutdown()
        self.engine.dispose()


def build_platform(
    settings: Settings,
    *,
    metadata: Optional[MetadataBackend] = None,
    sensitivity: Optional[SensitivityBackend] = None,
    transcoder: Optional[TranscodingBackend] = None,
    steps: Optional[Sequence[StepDefinition]] = None,
    rng: Optional[random.Random] = None,
) -> Platform:
    """Les backends / étapes passés en argument remplacent les implémentations simulées."""
    engine = build_engine(settings)
    storage = LocalStorage(settings.STORAGE_ROOT)
    broadcaster = EventBroadcaster(queue_size=settings.EVENTS_QUEUE_SIZE)
    rng = rng or random.Random()
    scale = settings.PIPELINE_TIME_SCALE

    metadata = metadata or SimulatedMetadataBackend(rng=rng, delay=0.5 * scale)
    sensitivity = sensitivity or SimulatedSensitivityBackend(
        rng=rng,
        flag_rate=settings.SENSITIVITY_FLAG_RATE,
        delay=0.0,
    )
    transcoder = transcoder or SimulatedTranscoder(
        storage,
        stream_url_prefix=f"{settings.API_PREFIX}/stream",
    )
    if steps is None:
        steps = build_default_steps(transcoder=transcoder, metadata=metadata, sensitivity=sensitivity)

    sessions = session_factory(engine)
    processor = VideoProcessor(
        session_factory=sessions,
        broadcaster=broadcaster,
        steps=steps,
        time_scale=scale,
        progress_ticks=settings.PIPELINE_PROGRESS_TICKS,
        dedupe=settings.PIPELINE_DEDUPE_ENQUEUE,
        step_timeout=settings.PIPELINE_STEP_TIMEOUT_SECONDS,
    )

    logger.info(
        "Platform built (db=%s, storage=%s, steps=%s)",
        settings.DATABASE_URL,
        storage.root,
        [s.name for s in steps],
    )
    return Platform(
        settings=settings,
        engine=engine,
        session_factory=sessions,
        storage=storage,
        assembler=ChunkAssembler(storage),
        cdn=CDNCache(max_entries=settings.CDN_MAX_ENTRIES, default_ttl=settings.CDN_MEDIA_TTL_SECONDS),
        broadcaster=broadcaster,
        metadata=metadata,
        sensitivity=sensitivity,
        transcoder=transcoder,
        processor=processor,
    )
