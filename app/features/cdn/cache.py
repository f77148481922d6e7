"""
➡️ But : Simuler un CDN devant le stockage (cache mémoire borné + expiration).

cache() : insère un objet ; si le cache est plein, évince l'entrée la plus ancienne (cached_at).

get() : HIT si présent et non expiré (compteur de hits), sinon None (MISS).
Une entrée expirée est supprimée au moment où un get() la découvre (expiration paresseuse).

invalidate() / invalidate_prefix() : suppression explicite.

🔹 Avantages :

Un seul propriétaire des octets en cache ; les routes n'en gardent pas de copie.

Horloge injectable : les tests contrôlent le temps.
"""

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional


@dataclass
class CacheEntry:
    path: str
    data: bytes
    content_type: str
    cached_at: float
    ttl: float
    hits: int = 0


@dataclass(frozen=True)
class CachedObject:
    data: bytes
    content_type: str


class CDNCache:
    def __init__(
        self,
        *,
        max_entries: int = 100,
        default_ttl: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.time,
    ):
        if max_entries < 1:
            raise ValueError("max_entries doit être >= 1")
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    def cache(self, path: str, data: bytes, content_type: str, ttl: Optional[float] = None) -> None:
        with self._lock:
            if path not in self._entries and len(self._entries) >= self.max_entries:
                self._evict_oldest()
            self._entries[path] = CacheEntry(
                path=path,
                data=data,
                content_type=content_type,
                cached_at=self._clock(),
                ttl=self.default_ttl if ttl is None else ttl,
            )

    def get(self, path: str) -> Optional[CachedObject]:
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                self.misses += 1
                return None
            if self._clock() - entry.cached_at > entry.ttl:
                del self._entries[path]
                self.misses += 1
                return None
            entry.hits += 1
            self.hits += 1
            return CachedObject(data=entry.data, content_type=entry.content_type)

    def invalidate(self, path: str) -> bool:
        with self._lock:
            return self._entries.pop(path, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for k in keys:
                del self._entries[k]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_stats(self) -> dict:
        with self._lock:
            entries: List[dict] = [
                {
                    "path": e.path,
                    "hits": e.hits,
                    "cached_at": datetime.fromtimestamp(e.cached_at, tz=timezone.utc),
                    "content_type": e.content_type,
                    "bytes": len(e.data),
                }
                for e in self._entries.values()
            ]
            return {
                "size": len(self._entries),
                "max_size": self.max_entries,
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
                "entries": entries,
            }

    def _evict_oldest(self) -> None:
        # appelé sous self._lock
        if not self._entries:
            return
        oldest = min(self._entries.values(), key=lambda e: e.cached_at)
        del self._entries[oldest.path]
        self.evictions += 1


def video_prefix(video_id: int) -> str:
    return f"videos/{video_id}/"


def asset_key(video_id: int, asset: str) -> str:
    """Clé CDN d'un asset de vidéo : videos/<id>/<hls|dash|thumbnail>."""
    return f"{video_prefix(video_id)}{asset}"
