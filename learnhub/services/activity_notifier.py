"""Best-effort activity broadcasting.

``notify`` never raises and never blocks the caller: state changes are
already committed when it runs, and a failed delivery only costs the
dashboards one event.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from fastapi import WebSocket

from learnhub.core.config import get_settings
from learnhub.core.security import now_utc

logger = logging.getLogger("learnhub.activity")

ACTIVITY_EVENT = "activity:new"


@dataclass
class ActivityEvent:
    type: str
    user_name: str | None
    item_title: str | None
    course_title: str | None
    course_id: int | None = None
    timestamp: datetime = field(default_factory=now_utc)
    extra: dict[str, Any] = field(default_factory=dict)

    def as_payload(self) -> dict[str, Any]:
        payload = {
            "type": self.type,
            "userName": self.user_name,
            "itemTitle": self.item_title,
            "courseTitle": self.course_title,
            "courseId": self.course_id,
            "timestamp": self.timestamp.isoformat(),
        }
        payload.update(self.extra)
        return payload


class ActivityNotifier:
    def __init__(self, history_size: int = 50):
        self._connections: set[WebSocket] = set()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._recent: deque[dict[str, Any]] = deque(maxlen=history_size)
        self._lock = threading.Lock()
        # Strong references so scheduled broadcasts are not garbage-collected.
        self._pending: set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._loop = asyncio.get_running_loop()
        with self._lock:
            self._connections.add(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        with self._lock:
            self._connections.discard(websocket)

    @property
    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def recent(self, limit: int | None = None) -> list[dict[str, Any]]:
        with self._lock:
            items = list(self._recent)
        return items if limit is None else items[:limit]

    def notify(self, event: ActivityEvent) -> None:
        try:
            payload = event.as_payload()
            with self._lock:
                self._recent.appendleft(payload)
                has_listeners = bool(self._connections)
            loop = self._loop
            if not has_listeners or loop is None or loop.is_closed():
                return
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None
            if running is loop:
                task = loop.create_task(self._broadcast(payload))
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)
            else:
                asyncio.run_coroutine_threadsafe(self._broadcast(payload), loop)
        except Exception:
            logger.warning("Activity notification dropped: type=%s", event.type, exc_info=True)

    async def _broadcast(self, payload: dict[str, Any]) -> None:
        with self._lock:
            targets = list(self._connections)
        message = {"event": ACTIVITY_EVENT, "data": payload}
        dead: list[WebSocket] = []
        for ws in targets:
            try:
                await ws.send_json(message)
            except Exception:
                dead.append(ws)
        if dead:
            logger.info("Dropping %d dead activity listeners", len(dead))
            with self._lock:
                for ws in dead:
                    self._connections.discard(ws)


activity_notifier = ActivityNotifier(history_size=get_settings().activity_feed_limit)
