"""EventReporter: Pendo track イベントの fire-and-forget 送信"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Coroutine, Mapping
from typing import Any

import structlog

from .config import TrackingConfig
from .exceptions import PendoError
from .http_client import PendoTrackClient
from .models import EvaluationContext

logger = structlog.stdlib.get_logger(__name__)


def build_track_payload(
    event_name: str,
    context: EvaluationContext,
    properties: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """/data/track に送るペイロードを組み立てる。accountId は無ければ省略する。"""
    payload: dict[str, Any] = {
        "type": "track",
        "event": event_name,
        "visitorId": context.targeting_key,
    }
    if context.account_id is not None:
        payload["accountId"] = context.account_id
    payload["timestamp"] = int(time.time() * 1000)
    payload["properties"] = dict(properties or {})
    return payload


class EventReporter:
    """フラグ評価とは独立に track イベントを送信するレポーター。

    送信は実行中のイベントループ上のタスクとして行い、呼び出し元は待たない。
    イベントループ外から呼ばれた場合はデーモンスレッド上で送信する。
    送信失敗はログに残すだけで呼び出し元には伝播しない。
    """

    def __init__(
        self,
        config: TrackingConfig,
        http_client: PendoTrackClient | None = None,
        name: str = "pendo-provider",
    ) -> None:
        self._config = config
        self._http = http_client or PendoTrackClient(config)
        self._logger = logger.bind(reporter=name)
        self._tasks: set[asyncio.Task[None]] = set()
        self._threads: set[threading.Thread] = set()

    @property
    def pending(self) -> int:
        """送信中のイベント数。"""
        return len(self._tasks) + len(self._threads)

    def track(
        self,
        event_name: str,
        context: EvaluationContext,
        properties: Mapping[str, Any] | None = None,
    ) -> None:
        """track イベントを送信する（待たない）。"""
        if not self._config.track_event_secret:
            self._logger.warning(
                "trackEventSecret is required to track events", event_name=event_name
            )
            return
        if not context.targeting_key:
            self._logger.warning(
                "targetingKey (visitorId) is required to track events",
                event_name=event_name,
            )
            return
        self._dispatch(self._deliver(build_track_payload(event_name, context, properties)))

    def _dispatch(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            thread = threading.Thread(
                target=self._run_in_thread, args=(coro,), name="pendo-track", daemon=True
            )
            self._threads.add(thread)
            thread.start()
            return
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _run_in_thread(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            asyncio.run(coro)
        finally:
            self._threads.discard(threading.current_thread())

    async def _deliver(self, payload: dict[str, Any]) -> None:
        try:
            await self._http.send_track_event(payload)
        except Exception as e:
            self._logger.error(
                "Failed to track event",
                event_name=payload.get("event"),
                visitor_id=payload.get("visitorId"),
                error=e.message if isinstance(e, PendoError) else str(e),
            )

    async def flush(self) -> None:
        """送信中のイベントの完了を待つ。"""
        while self._tasks or self._threads:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            for thread in list(self._threads):
                await asyncio.to_thread(thread.join)

    async def aclose(self) -> None:
        await self.flush()
