from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from app.api.v1.dependencies import get_admin_service
from app.core.errors import ConflictError, NotFoundError
from app.features.admin.schemas import (
    CDNInvalidateOut,
    CDNStatsOut,
    JobAdminOut,
    SensitivityUpdateIn,
    SensitivityUpdateOut,
    StatsOut,
)
from app.features.admin.services import AdminService

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    responses={404: {"description": "Not Found"}},
)


# -----------------------------
# Stats / jobs
# -----------------------------
@router.get(
    "/stats",
    summary="Statistiques globales (vidéos, vues, stockage, jobs récents, file du pipeline)",
    response_model=StatsOut,
)
def stats(svc: AdminService = Depends(get_admin_service)):
    return svc.stats()


@router.get(
    "/jobs",
    summary="Lister les jobs de traitement récents",
    response_model=List[JobAdminOut],
)
def list_jobs(
    limit: int = Query(50, ge=1, le=200),
    job_status: Optional[str] = Query(None, alias="status"),
    svc: AdminService = Depends(get_admin_service),
):
    return svc.jobs(limit=limit, status=job_status)


# -----------------------------
# Modération
# -----------------------------
@router.put(
    "/videos/{video_id}/sensitivity",
    summary="Valider (safe) ou signaler (flagged) une vidéo",
    response_model=SensitivityUpdateOut,
    responses={409: {"description": "Vidéo pas encore traitée"}},
)
def moderate(
    payload: SensitivityUpdateIn,
    video_id: int = Path(..., ge=1),
    svc: AdminService = Depends(get_admin_service),
):
    try:
        return svc.moderate(video_id, payload.sensitivity_status)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


# -----------------------------
# CDN
# -----------------------------
@router.get(
    "/cdn",
    summary="Etat du cache CDN",
    response_model=CDNStatsOut,
)
def cdn_stats(svc: AdminService = Depends(get_admin_service)):
    return svc.cdn_stats()


@router.delete(
    "/cdn",
    summary="Invalider une entrée du CDN (ou tout le cache sans path)",
    response_model=CDNInvalidateOut,
)
def cdn_invalidate(
    path: Optional[str] = Query(None, description="Clé exacte, ex: videos/1/hls"),
    svc: AdminService = Depends(get_admin_service),
):
    return svc.cdn_invalidate(path)
