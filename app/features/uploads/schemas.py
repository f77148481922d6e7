from typing import Optional
from pydantic import BaseModel, Field as PydField


# ---------- IN ----------

class UploadInitIn(BaseModel):
    # requis, mais validés côté service (400 plutôt que 422)
    filename: Optional[str] = PydField(None, description="Nom du fichier d'origine")
    size: Optional[int] = PydField(None, description="Taille totale en octets")
    mime_type: Optional[str] = PydField(None, description="Type MIME déclaré par le client")
    title: Optional[str] = None
    description: Optional[str] = None
    owner_id: Optional[int] = None


# ---------- OUT ----------

class UploadInitOut(BaseModel):
    video_id: int
    upload_url: str
    max_chunk_bytes: int


class UploadChunkOut(BaseModel):
    video_id: int
    chunk_index: int
    received: int
    total_chunks: int
    progress: float
    complete: bool
