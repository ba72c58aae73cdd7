"""FeatureFlagClient: プロバイダー呼び出しと after フック実行"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

import structlog

from .hooks import Hook
from .models import (
    ErrorCode,
    EvaluationContext,
    FlagEvaluationDetails,
    FlagType,
    HookContext,
    ProviderStatus,
    Reason,
    ResolutionDetails,
)
from .provider import PendoProvider

logger = structlog.stdlib.get_logger(__name__)

T = TypeVar("T")


class FeatureFlagClient:
    """PendoProvider を使ってフラグを評価するクライアント。"""

    def __init__(self, provider: PendoProvider, hooks: list[Hook] | None = None) -> None:
        self._provider = provider
        self.hooks: list[Hook] = list(hooks or [])

    @property
    def provider(self) -> PendoProvider:
        return self._provider

    def add_hooks(self, *hooks: Hook) -> None:
        self.hooks.extend(hooks)

    async def get_boolean_details(
        self, flag_key: str, default_value: bool, context: EvaluationContext | None = None
    ) -> FlagEvaluationDetails[bool]:
        return await self._evaluate(
            FlagType.BOOLEAN, flag_key, default_value, context, self._provider.resolve_boolean
        )

    async def get_string_details(
        self, flag_key: str, default_value: str, context: EvaluationContext | None = None
    ) -> FlagEvaluationDetails[str]:
        return await self._evaluate(
            FlagType.STRING, flag_key, default_value, context, self._provider.resolve_string
        )

    async def get_number_details(
        self, flag_key: str, default_value: float, context: EvaluationContext | None = None
    ) -> FlagEvaluationDetails[float]:
        return await self._evaluate(
            FlagType.NUMBER, flag_key, default_value, context, self._provider.resolve_number
        )

    async def get_object_details(
        self, flag_key: str, default_value: Any, context: EvaluationContext | None = None
    ) -> FlagEvaluationDetails[Any]:
        return await self._evaluate(
            FlagType.OBJECT, flag_key, default_value, context, self._provider.resolve_object
        )

    async def get_boolean_value(
        self, flag_key: str, default_value: bool, context: EvaluationContext | None = None
    ) -> bool:
        return (await self.get_boolean_details(flag_key, default_value, context)).value

    async def get_string_value(
        self, flag_key: str, default_value: str, context: EvaluationContext | None = None
    ) -> str:
        return (await self.get_string_details(flag_key, default_value, context)).value

    async def get_number_value(
        self, flag_key: str, default_value: float, context: EvaluationContext | None = None
    ) -> float:
        return (await self.get_number_details(flag_key, default_value, context)).value

    async def get_object_value(
        self, flag_key: str, default_value: Any, context: EvaluationContext | None = None
    ) -> Any:
        return (await self.get_object_details(flag_key, default_value, context)).value

    def track(
        self,
        event_name: str,
        context: EvaluationContext | None = None,
        properties: Mapping[str, Any] | None = None,
    ) -> None:
        self._provider.track(event_name, context or EvaluationContext(), properties)

    async def _evaluate(
        self,
        flag_type: FlagType,
        flag_key: str,
        default_value: T,
        context: EvaluationContext | None,
        resolve: Callable[[str, T, EvaluationContext], Awaitable[ResolutionDetails[T]]],
    ) -> FlagEvaluationDetails[T]:
        ctx = context or EvaluationContext()
        if self._provider.status != ProviderStatus.READY:
            # 未初期化のプロバイダーは呼ばず、after フックも実行しない
            return FlagEvaluationDetails(
                flag_key=flag_key,
                value=default_value,
                reason=Reason.ERROR,
                error_code=ErrorCode.PROVIDER_NOT_READY,
                error_message="Provider is not ready",
            )

        resolution = await resolve(flag_key, default_value, ctx)
        details = FlagEvaluationDetails.from_resolution(flag_key, resolution)
        hook_context = HookContext(
            flag_key=flag_key,
            default_value=default_value,
            flag_value_type=flag_type,
            context=ctx,
            provider_metadata=self._provider.metadata,
        )
        self._run_after_hooks(hook_context, details)
        return details

    def _run_after_hooks(
        self, hook_context: HookContext, details: FlagEvaluationDetails[Any]
    ) -> None:
        for hook in [*self.hooks, *self._provider.hooks]:
            try:
                hook.after(hook_context, details)
            except Exception as e:
                logger.error(
                    "after hook failed",
                    flag_key=hook_context.flag_key,
                    hook=type(hook).__name__,
                    error=str(e),
                )
