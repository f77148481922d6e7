from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from app.api.v1.dependencies import get_upload_service
from app.core.errors import ConflictError, MissingChunkError, NotFoundError, ValidationError
from app.features.uploads.schemas import UploadChunkOut, UploadInitIn, UploadInitOut
from app.features.uploads.services import UploadService

router = APIRouter(
    prefix="/uploads",
    tags=["uploads"],
    responses={404: {"description": "Not Found"}},
)


# -----------------------------
# Init
# -----------------------------
@router.post(
    "/init",
    summary="Déclarer un upload (crée la vidéo en statut uploading)",
    status_code=status.HTTP_201_CREATED,
    response_model=UploadInitOut,
)
def init_upload(
    payload: UploadInitIn,
    svc: UploadService = Depends(get_upload_service),
):
    try:
        return svc.init_upload(payload)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# -----------------------------
# Chunk
# -----------------------------
@router.post(
    "/chunk",
    summary="Envoyer un chunk (le dernier déclenche l'assemblage puis le traitement)",
    description="Les chunks peuvent arriver dans n'importe quel ordre ; renvoyer un index remplace son contenu.",
    response_model=UploadChunkOut,
    responses={
        400: {"description": "Chunk invalide"},
        409: {"description": "Upload terminé ou chunks manquants"},
    },
)
async def upload_chunk(
    video_id: int = Form(...),
    chunk_index: int = Form(...),
    total_chunks: int = Form(...),
    chunk: UploadFile = File(...),
    svc: UploadService = Depends(get_upload_service),
):
    data = await chunk.read()
    try:
        return await svc.upload_chunk(
            video_id=video_id,
            chunk_index=chunk_index,
            total_chunks=total_chunks,
            data=data,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    except MissingChunkError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(e), "missing": e.missing},
        )
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
