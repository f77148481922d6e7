"""
➡️ But : Configurer la base et gérer les sessions de base de données.

build_engine() : connexion à la base (sqlite:///app.db par défaut).

init_db() : crée les tables à partir des modèles SQLModel.

get_session() : dépendance FastAPI qui ouvre une session sur l'engine de l'application, la fournit aux routes, puis la ferme proprement.

session_factory() : même chose hors requête (worker du pipeline, scripts).

🔹 Avantages :

Un seul endroit pour gérer les connexions DB.

Pas d'engine global : chaque application (ou test) construit le sien.
"""

from typing import Any, Callable, Dict

from fastapi import Request
from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.engine import Engine

# Import all models for creating all tables
from app.db.models.videos import Video
from app.db.models.processing_jobs import ProcessingJob, ProcessingStep
from app.db.models.analytics import AnalyticsEvent

from app.core.config import Settings

SessionFactory = Callable[[], Session]


def build_engine(settings: Settings) -> Engine:
    url = settings.DATABASE_URL
    assert url, "DATABASE_URL must be set"

    is_sqlite = url.startswith("sqlite:")

    connect_args: Dict[str, Any] = {}
    if is_sqlite:
        # Requis pour SQLite : le worker (boucle asyncio) et les routes (threadpool) partagent l'engine
        connect_args["check_same_thread"] = False

    engine = create_engine(
        url,
        echo=bool(settings.DB_ECHO),
        connect_args=connect_args,
        pool_pre_ping=not is_sqlite,  # ping utile pour Postgres/MySQL ; inutile pour SQLite
    )
    return engine


def init_db(engine: Engine) -> None:
    """
    Crée les tables si elles n'existent pas (usage dev/demo).
    En prod avec Alembic, préfère des migrations.
    """
    SQLModel.metadata.create_all(engine)


def session_factory(engine: Engine) -> SessionFactory:
    def _open() -> Session:
        # expire_on_commit=False : le worker garde ses objets lisibles entre deux commits
        return Session(engine, expire_on_commit=False)
    return _open


def get_session(request: Request):
    """
    Dépendance FastAPI : fournit une session par requête.
    Utilisation :
        def route(..., session: Session = Depends(get_session)):
            ...
    """
    with Session(request.app.state.platform.engine) as session:
        yield session
