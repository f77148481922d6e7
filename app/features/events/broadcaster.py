"""
➡️ But : Publier les événements d'une vidéo vers les clients abonnés (pub/sub par video_id).

subscribe() / unsubscribe() : un client rejoint / quitte le topic d'une vidéo.

publish() : diffuse à tous les abonnés actuels, sans jamais bloquer l'émetteur.
Un abonné dont la file est pleine perd l'événement (compteur dropped), les autres le reçoivent.

Pas de rejeu : un abonné arrivé après un événement ne le reçoit pas (interroger /status pour l'état courant).
"""

import asyncio
import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Set, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)

Event = Union[BaseModel, Dict[str, Any]]


@dataclass(eq=False)
class Subscription:
    video_id: int
    queue: asyncio.Queue = field(repr=False)
    dropped: int = 0

    async def get(self) -> Dict[str, Any]:
        return await self.queue.get()

    def get_nowait(self) -> Dict[str, Any]:
        return self.queue.get_nowait()


class EventBroadcaster:
    def __init__(self, *, queue_size: int = 100):
        self.queue_size = queue_size
        self._subs: Dict[int, Set[Subscription]] = defaultdict(set)

    def subscribe(self, video_id: int) -> Subscription:
        sub = Subscription(video_id=video_id, queue=asyncio.Queue(maxsize=self.queue_size))
        self._subs[video_id].add(sub)
        logger.debug("Subscriber joined video %s (%d total)", video_id, len(self._subs[video_id]))
        return sub

    def unsubscribe(self, video_id: int, sub: Subscription) -> None:
        subs = self._subs.get(video_id)
        if subs and sub in subs:
            subs.remove(sub)
            if not subs:
                self._subs.pop(video_id, None)

    def subscriber_count(self, video_id: int) -> int:
        return len(self._subs.get(video_id, ()))

    def publish(self, video_id: int, event: Event) -> int:
        """Retourne le nombre d'abonnés qui ont reçu l'événement."""
        payload = event.model_dump(mode="json") if isinstance(event, BaseModel) else dict(event)
        delivered = 0
        for sub in list(self._subs.get(video_id, ())):
            try:
                sub.queue.put_nowait(payload)
                delivered += 1
            except asyncio.QueueFull:
                sub.dropped += 1
                logger.warning("Dropping %s for a slow subscriber of video %s", payload.get("type"), video_id)
        return delivered


def sse_format(data: Dict[str, Any]) -> str:
    return f"event: {data.get('type', 'message')}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


async def stream_events(
    broadcaster: EventBroadcaster,
    sub: Subscription,
    *,
    keepalive: float = 20.0,
    is_disconnected: Callable[[], Awaitable[bool]],
) -> AsyncIterator[str]:
    """
    Trames SSE d'un abonnement : hello, puis les événements en direct (commentaire keepalive si rien).
    Se désabonne quand le client part ou que le générateur est fermé.
    """
    try:
        yield sse_format({"type": "hello", "video_id": sub.video_id})
        while True:
            try:
                item = await asyncio.wait_for(sub.get(), timeout=keepalive)
                yield sse_format(item)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
            if await is_disconnected():
                break
    finally:
        broadcaster.unsubscribe(sub.video_id, sub)
