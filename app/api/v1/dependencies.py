"""
➡️ But : Centraliser les dépendances réutilisables des routes.

Exemples :

get_platform() : composants partagés rangés dans app.state.platform par create_app().

get_upload_service() : crée un UploadService à partir d'une session DB + des composants.

pagination() : paramètres communs page et size.

🔹 Avantages :

Routes plus propres (pas de code dupliqué).

Facile à injecter dans plusieurs endpoints (Depends()).
"""

from fastapi import Depends, Query, Request
from sqlmodel import Session

from app.core.platform import Platform
from app.db.session import get_session

from app.db.repositories.videos import VideoRepository
from app.db.repositories.processing_jobs import ProcessingJobRepository, ProcessingStepRepository
from app.db.repositories.analytics import AnalyticsRepository

from app.features.uploads.services import UploadService
from app.features.videos.services import VideoService
from app.features.streaming.services import StreamingService
from app.features.analytics.services import AnalyticsService
from app.features.admin.services import AdminService


def pagination(
    page: int = Query(1, ge=1, description="Numéro de page", examples=[1]),
    size: int = Query(20, ge=1, le=100, description="Taille de page", examples=[20]),
):
    offset = (page - 1) * size
    return {"offset": offset, "limit": size}


# -----------------------------
# Platform
# -----------------------------
def get_platform(request: Request) -> Platform:
    return request.app.state.platform


# -----------------------------
# Repositories
# -----------------------------
def get_video_repository(session: Session = Depends(get_session)) -> VideoRepository:
    return VideoRepository(session)

def get_job_repository(session: Session = Depends(get_session)) -> ProcessingJobRepository:
    return ProcessingJobRepository(session)

def get_step_repository(session: Session = Depends(get_session)) -> ProcessingStepRepository:
    return ProcessingStepRepository(session)

def get_analytics_repository(session: Session = Depends(get_session)) -> AnalyticsRepository:
    return AnalyticsRepository(session)


# -----------------------------
# Upload service
# -----------------------------
def get_upload_service(
    platform: Platform = Depends(get_platform),
    video_repo: VideoRepository = Depends(get_video_repository),
) -> UploadService:
    return UploadService(
        repo=video_repo,
        assembler=platform.assembler,
        broadcaster=platform.broadcaster,
        processor=platform.processor,
        settings=platform.settings,
    )


# -----------------------------
# Video service
# -----------------------------
def get_video_service(
    platform: Platform = Depends(get_platform),
    video_repo: VideoRepository = Depends(get_video_repository),
    job_repo: ProcessingJobRepository = Depends(get_job_repository),
    step_repo: ProcessingStepRepository = Depends(get_step_repository),
    analytics_repo: AnalyticsRepository = Depends(get_analytics_repository),
) -> VideoService:
    # ✅ toutes les dépendances injectées via la signature (FastAPI les résout)
    return VideoService(
        repo=video_repo,
        job_repo=job_repo,
        step_repo=step_repo,
        analytics_repo=analytics_repo,
        storage=platform.storage,
        assembler=platform.assembler,
        cdn=platform.cdn,
        processor=platform.processor,
        settings=platform.settings,
    )


# -----------------------------
# Streaming service
# -----------------------------
def get_streaming_service(
    platform: Platform = Depends(get_platform),
    video_repo: VideoRepository = Depends(get_video_repository),
) -> StreamingService:
    return StreamingService(
        repo=video_repo,
        storage=platform.storage,
        cdn=platform.cdn,
        settings=platform.settings,
    )


# -----------------------------
# Analytics / Admin services
# -----------------------------
def get_analytics_service(
    analytics_repo: AnalyticsRepository = Depends(get_analytics_repository),
    video_repo: VideoRepository = Depends(get_video_repository),
) -> AnalyticsService:
    return AnalyticsService(repo=analytics_repo, video_repo=video_repo)

def get_admin_service(
    platform: Platform = Depends(get_platform),
    video_repo: VideoRepository = Depends(get_video_repository),
    job_repo: ProcessingJobRepository = Depends(get_job_repository),
) -> AdminService:
    return AdminService(
        video_repo=video_repo,
        job_repo=job_repo,
        cdn=platform.cdn,
        processor=platform.processor,
    )
