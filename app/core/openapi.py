"""
➡️ But : Personnaliser la documentation Swagger/OpenAPI.

custom_openapi(app) complète le schéma généré par FastAPI avec
les conventions de l'API (upload par chunks, statuts, cache CDN).
"""

from fastapi.openapi.utils import get_openapi

_DESCRIPTION = (
    "Hébergement vidéo : upload par chunks, pipeline de traitement simulé, diffusion via CDN.\n\n"
    "### Conventions\n"
    "- Toutes les heures sont en UTC.\n"
    "- Pagination: query params `page` & `size`.\n"
    "- Statuts vidéo : `uploading` → `processing` → `ready` | `flagged` | `failed`.\n"
    "- Les réponses servies par le CDN portent l'en-tête `X-Cache: HIT|MISS`.\n"
    "- Suivi en direct : `GET /videos/{id}/events` (Server-Sent Events, sans rejeu).\n"
)


def custom_openapi(app):
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=_DESCRIPTION,
        routes=app.routes,
        tags=app.openapi_tags,
    )
    app.openapi_schema = openapi_schema
    return app.openapi_schema
