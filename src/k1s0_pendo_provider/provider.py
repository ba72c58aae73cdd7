"""PendoProvider: Pendo のセグメント所属によるサーバーサイドフラグ解決"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, TypeVar

import structlog

from .cache import SegmentCache, cache_key
from .config import PendoProviderConfig
from .exceptions import ConfigurationError, PendoError
from .hooks import Hook
from .http_client import PendoHttpClient
from .models import (
    ErrorCode,
    EvaluationContext,
    FlagSet,
    ProviderMetadata,
    ProviderStatus,
    Reason,
    ResolutionDetails,
)
from .reporter import EventReporter

logger = structlog.stdlib.get_logger(__name__)

T = TypeVar("T")

PROVIDER_NAME = "pendo-server-provider"


class PendoProvider:
    """Pendo API のセグメント所属でフラグを評価するプロバイダー。

    visitor/account ごとのフラグ集合を TTL 付きでキャッシュし、キャッシュミス時に
    segmentflag.json を 1 回呼び出す。同一キーへの同時ミスは合流させない。
    """

    def __init__(
        self,
        config: PendoProviderConfig,
        *,
        cache: SegmentCache | None = None,
        http_client: PendoHttpClient | None = None,
    ) -> None:
        self._config = config
        self._cache = cache if cache is not None else SegmentCache()
        self._http = http_client or PendoHttpClient(config)
        self._reporter = EventReporter(config, self._http)
        self._logger = logger.bind(provider=PROVIDER_NAME)
        self.metadata = ProviderMetadata(name=PROVIDER_NAME)
        self.status = ProviderStatus.NOT_READY
        self.hooks: list[Hook] = []

    @property
    def config(self) -> PendoProviderConfig:
        return self._config

    @property
    def reporter(self) -> EventReporter:
        return self._reporter

    async def initialize(self) -> None:
        """必須設定を検証して READY にする。

        Raises:
            ConfigurationError: api_key または default_url が空の場合
        """
        if not self._config.api_key:
            raise ConfigurationError("Pendo API key is required")
        if not self._config.default_url:
            raise ConfigurationError(
                "Pendo defaultUrl is required for server-side evaluation"
            )
        self.status = ProviderStatus.READY

    async def close(self) -> None:
        """NOT_READY に戻し、キャッシュを破棄する。"""
        self.status = ProviderStatus.NOT_READY
        self._cache.clear()
        await self._reporter.flush()

    shutdown = close

    def clear_cache(self) -> None:
        self._cache.clear()

    def track(
        self,
        event_name: str,
        context: EvaluationContext,
        properties: Mapping[str, Any] | None = None,
    ) -> None:
        """カスタムイベントを Pendo に送信する（待たない）。"""
        self._reporter.track(event_name, context, properties)

    async def resolve_boolean(
        self, flag_key: str, default_value: bool, context: EvaluationContext
    ) -> ResolutionDetails[bool]:
        try:
            flags = await self._get_segment_flags(context)
        except PendoError as e:
            self._logger.error(
                "Error evaluating flag",
                flag_key=flag_key,
                visitor_id=context.targeting_key,
                error=e.message,
            )
            return ResolutionDetails(
                value=default_value,
                reason=Reason.ERROR,
                error_code=ErrorCode.GENERAL,
                error_message=e.message,
            )

        if flags is None:
            return ResolutionDetails(
                value=default_value, reason=Reason.DEFAULT, variant="default"
            )

        enabled = flag_key in flags
        return ResolutionDetails(
            value=enabled,
            reason=Reason.TARGETING_MATCH if enabled else Reason.DEFAULT,
            variant="on" if enabled else "off",
        )

    async def resolve_string(
        self, flag_key: str, default_value: str, context: EvaluationContext
    ) -> ResolutionDetails[str]:
        return await self._resolve_derived(
            flag_key, default_value, context, lambda enabled: "on" if enabled else "off"
        )

    async def resolve_number(
        self, flag_key: str, default_value: float, context: EvaluationContext
    ) -> ResolutionDetails[float]:
        return await self._resolve_derived(
            flag_key, default_value, context, lambda enabled: 1 if enabled else 0
        )

    async def resolve_object(
        self, flag_key: str, default_value: Any, context: EvaluationContext
    ) -> ResolutionDetails[Any]:
        return await self._resolve_derived(
            flag_key, default_value, context, lambda enabled: {"enabled": enabled}
        )

    async def _resolve_derived(
        self,
        flag_key: str,
        default_value: T,
        context: EvaluationContext,
        translate: Callable[[bool], T],
    ) -> ResolutionDetails[T]:
        """boolean の解決結果を型ごとの値に変換する。"""
        result = await self.resolve_boolean(flag_key, False, context)

        if result.reason == Reason.ERROR:
            return ResolutionDetails(
                value=default_value,
                reason=Reason.ERROR,
                error_code=result.error_code,
                error_message=result.error_message,
            )
        if result.reason == Reason.DEFAULT and not result.value:
            return ResolutionDetails(
                value=default_value, reason=Reason.DEFAULT, variant="default"
            )
        return ResolutionDetails(
            value=translate(result.value),
            reason=result.reason,
            variant=result.variant,
        )

    async def _get_segment_flags(self, context: EvaluationContext) -> FlagSet | None:
        """visitor/account のフラグ集合を返す。visitor ID が無ければ None。"""
        visitor_id = context.targeting_key
        if not visitor_id:
            self._logger.warning("No targetingKey (visitor ID) provided in context")
            return None

        key = cache_key(visitor_id, context.account_id)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        flags = await self._http.fetch_segment_flags(visitor_id, context.account_id)
        self._cache.set(key, flags, self._config.cache_ttl_ms)
        self._logger.debug(
            "Fetched segment flags",
            visitor_id=visitor_id,
            account_id=context.account_id,
            flag_count=len(flags),
        )
        return flags
