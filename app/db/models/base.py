"""
➡️ But : Propriétés communes à toutes les tables (vidéos, jobs, étapes, analytics).

id entier auto-incrémenté + horodatages de création / mise à jour.

Les dates sont écrites en UTC avec tzinfo. SQLite ne conserve pas le fuseau :
une date relue sans tzinfo est une date UTC (voir as_utc).
"""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    """Heure UTC courante, avec tzinfo."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Rattache UTC à une date relue sans fuseau."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class BaseModelDB(SQLModel, table=False):
    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def touch(self) -> None:
        self.updated_at = utcnow()
