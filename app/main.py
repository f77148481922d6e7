"""
➡️ But : assembler toutes les pièces du puzzle.

create_app() crée l'instance FastAPI (app).

Configure :

logging (niveau LOG_LEVEL)

composants partagés (app.state.platform : DB, stockage, CDN, broadcaster, pipeline)

CORS (autorisations de qui peut appeler ces API)

titre, version, tags

schéma OpenAPI personnalisé

Inclut les routers (ex : /api/v1/uploads).

Initialise la base + les dossiers de stockage au démarrage (@app.on_event("startup")),
arrête le worker du pipeline à l'arrêt.

🔹 Avantages :

Centralise la configuration du serveur HTTP.

Point unique d'exécution : uvicorn app.main:app --reload.

Les tests appellent create_app(Settings(...)) : une application isolée par test.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import Settings, settings as default_settings
from app.core.logging import configure_logging
from app.core.openapi import custom_openapi
from app.core.platform import Platform, build_platform

from app.api.v1.routers import uploads, videos, streaming, analytics, admin

import uvicorn

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, *, platform: Optional[Platform] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)
    platform = platform or build_platform(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        version="0.0.1",
        openapi_tags=[
            {"name": "uploads", "description": "Upload des vidéos par chunks"},
            {"name": "videos", "description": "Consultation, suivi du traitement et suppression des vidéos"},
            {"name": "stream", "description": "Lecture : manifeste, flux HLS/DASH, vignettes, fichier par plages"},
            {"name": "analytics", "description": "Evénements de lecture"},
            {"name": "admin", "description": "Statistiques, modération et cache CDN"},
            {"name": "health", "description": "Etat du service"},
        ],
    )
    app.state.platform = platform

    # CORS (ajustez selon vos besoins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"], allow_credentials=True,
        allow_methods=["*"], allow_headers=["*"],
    )

    # Routers
    app.include_router(uploads.router, prefix=settings.API_PREFIX)
    app.include_router(videos.router, prefix=settings.API_PREFIX)
    app.include_router(streaming.router, prefix=settings.API_PREFIX)
    app.include_router(analytics.router, prefix=settings.API_PREFIX)
    app.include_router(admin.router, prefix=settings.API_PREFIX)

    @app.get(f"{settings.API_PREFIX}/health", tags=["health"], summary="Vérifier que le service répond")
    def health():
        processor = app.state.platform.processor
        return {
            "status": "ok",
            "processing": processor.is_processing,
            "queued": len(processor.pending),
        }

    # Génération du schéma OpenAPI custom (facultatif, mais propre)
    app.openapi = lambda: custom_openapi(app)

    # Démarrage / arrêt
    @app.on_event("startup")
    def on_startup():
        app.state.platform.startup()
        logger.info("%s started (env=%s)", settings.APP_NAME, settings.ENV)

    @app.on_event("shutdown")
    async def on_shutdown():
        await app.state.platform.shutdown()

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8080) # http://localhost:8080
