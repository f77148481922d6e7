"""
➡️ But : Centraliser tous les paramètres configurables (nom d’app, chemin DB, stockage, pipeline, CDN...)

Utilise pydantic-settings pour charger automatiquement les variables d’environnement (.env, variables système…).

Fournit un objet settings par défaut, que tu importes ailleurs :

from app.core.config import settings
print(settings.APP_NAME)

create_app(settings=...) accepte aussi une instance dédiée (tests, scripts).

🔹 Avantages :

Plus propre que des constantes éparpillées dans le code.

Facilite le passage entre environnements (dev / prod / test).
"""

from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # -----------------------------
    # App
    # -----------------------------
    APP_NAME: str = "Stream-Back"
    ENV: str = "dev"  # dev | prod | test
    LOG_LEVEL: str = "INFO"
    API_PREFIX: str = "/api/v1"

    # -----------------------------
    # DB
    # -----------------------------
    SQLITE_PATH: str = "app.db"  # fichier SQLite
    # Si tu veux forcer une URL différente (ex: Postgres), définis DATABASE_URL dans l'env.
    DATABASE_URL: Optional[str] = None
    DB_ECHO: Optional[bool] = None  # auto selon ENV si None

    # -----------------------------
    # Stockage (fichiers)
    # -----------------------------
    STORAGE_ROOT: str = "storage"
    MAX_UPLOAD_MB: int = 2048
    MAX_CHUNK_MB: int = 100
    ALLOWED_VIDEO_EXTENSIONS: List[str] = ["mp4", "mov", "avi", "mkv", "webm"]

    # -----------------------------
    # Pipeline de traitement
    # -----------------------------
    PIPELINE_TIME_SCALE: float = 1.0         # 0 = pas d'attente (tests)
    PIPELINE_PROGRESS_TICKS: int = 10        # mises à jour de progression par étape
    PIPELINE_DEDUPE_ENQUEUE: bool = False    # True = ignore un id déjà en file / en cours
    PIPELINE_STEP_TIMEOUT_SECONDS: Optional[float] = None
    SENSITIVITY_FLAG_RATE: float = 0.2       # backend simulé uniquement

    # -----------------------------
    # CDN (simulé)
    # -----------------------------
    CDN_MAX_ENTRIES: int = 100
    CDN_MEDIA_TTL_SECONDS: int = 24 * 60 * 60
    CDN_THUMBNAIL_TTL_SECONDS: int = 7 * 24 * 60 * 60
    STREAM_CACHE_CONTROL_MAX_AGE: int = 3600
    THUMBNAIL_CACHE_CONTROL_MAX_AGE: int = 86400

    # -----------------------------
    # Evénements (SSE)
    # -----------------------------
    EVENTS_QUEUE_SIZE: int = 100
    EVENTS_KEEPALIVE_SECONDS: float = 20.0

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }

    # -----------------------------
    # Post-process values
    # -----------------------------
    def model_post_init(self, __context): # appelée automatiquement
        # DATABASE_URL par défaut depuis SQLITE_PATH si non fourni
        if not self.DATABASE_URL:
            object.__setattr__(self, "DATABASE_URL", f"sqlite:///{self.SQLITE_PATH}")

        # echo SQL seulement en dev si non spécifié
        if self.DB_ECHO is None:
            object.__setattr__(self, "DB_ECHO", self.ENV == "dev")

        # extensions normalisées (sans point, minuscules)
        exts = [e.lower().lstrip(".") for e in self.ALLOWED_VIDEO_EXTENSIONS]
        object.__setattr__(self, "ALLOWED_VIDEO_EXTENSIONS", exts)


# Instance par défaut importable partout
settings = Settings()
