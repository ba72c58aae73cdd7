"""Pendo データ API の HTTP クライアント実装"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from .config import PendoProviderConfig, TrackingConfig
from .exceptions import (
    ConfigurationError,
    PendoError,
    RemoteRateLimitedError,
    RemoteUnavailableError,
)
from .jzb import encode_jzb
from .models import FlagSet

TRACK_SECRET_HEADER = "x-pendo-track-event-secret"

# 202: Pendo がまだ visitor を認識していない / 451: オプトアウト・ブロック済み
_EMPTY_FLAG_STATUSES = frozenset({202, 451})


class PendoTrackClient:
    """/data/track への送信だけを行う httpx クライアント。"""

    def __init__(self, config: TrackingConfig) -> None:
        self._config = config

    def _make_client(self, headers: dict[str, str]) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._config.base_url,
            headers=headers,
            timeout=self._config.timeout_seconds,
        )

    def _handle_error(self, resp: httpx.Response) -> None:
        if resp.status_code == 429:
            raise RemoteRateLimitedError()
        if not resp.is_success:
            raise RemoteUnavailableError(
                f"Pendo API error: {resp.status_code} {resp.reason_phrase}",
                status_code=resp.status_code,
            )

    async def send_track_event(self, payload: Mapping[str, Any]) -> None:
        """track イベントを送信する。"""
        secret = self._config.track_event_secret
        if not secret:
            raise ConfigurationError("trackEventSecret is required to track events")
        headers = {"Content-Type": "application/json", TRACK_SECRET_HEADER: secret}

        try:
            async with self._make_client(headers) as client:
                resp = await client.post("/data/track", json=dict(payload))
            self._handle_error(resp)
        except PendoError:
            raise
        except Exception as e:
            raise RemoteUnavailableError(str(e) or type(e).__name__, cause=e) from e


def _parse_segment_flags(data: Any) -> FlagSet:
    """レスポンス本文から segmentFlags を取り出す。欠落・null は空集合。"""
    if not isinstance(data, dict):
        raise RemoteUnavailableError("Pendo API error: invalid response body")
    flags = data.get("segmentFlags")
    if flags is None:
        return frozenset()
    if not isinstance(flags, list) or not all(isinstance(flag, str) for flag in flags):
        raise RemoteUnavailableError("Pendo API error: invalid segmentFlags")
    return frozenset(flags)


class PendoHttpClient(PendoTrackClient):
    """segmentflag.json の取得も行う Pendo データ API クライアント。"""

    _config: PendoProviderConfig

    def __init__(self, config: PendoProviderConfig) -> None:
        super().__init__(config)

    async def fetch_segment_flags(
        self, visitor_id: str, account_id: str | None = None
    ) -> FlagSet:
        """visitor/account が属するセグメントのフラグキー集合を取得する。"""
        payload: dict[str, Any] = {"visitorId": visitor_id}
        if account_id is not None:
            payload["accountId"] = account_id
        payload["url"] = self._config.default_url
        path = f"/data/segmentflag.json/{self._config.api_key}"

        try:
            async with self._make_client({"Accept": "application/json"}) as client:
                resp = await client.get(path, params={"jzb": encode_jzb(payload)})
            if resp.status_code in _EMPTY_FLAG_STATUSES:
                return frozenset()
            self._handle_error(resp)
            if not resp.content:
                return frozenset()
            return _parse_segment_flags(resp.json())
        except PendoError:
            raise
        except Exception as e:
            raise RemoteUnavailableError(str(e) or type(e).__name__, cause=e) from e
