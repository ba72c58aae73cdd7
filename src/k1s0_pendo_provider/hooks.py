"""フラグ評価後に Pendo へ track イベントを送るテレメトリーフック"""

from __future__ import annotations

import json
import math
from collections.abc import Callable
from typing import Any, Protocol

from .config import DEFAULT_BASE_URL, TrackingConfig
from .models import FlagEvaluationDetails, HookContext
from .reporter import EventReporter

DEFAULT_EVENT_NAME = "flag_evaluated"

# これ以上の整数値は指数表記になる
_EXPONENT_THRESHOLD = 1e21


class Hook(Protocol):
    """フラグ評価フックプロトコル。"""

    def after(
        self, hook_context: HookContext, details: FlagEvaluationDetails[Any]
    ) -> None: ...


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < _EXPONENT_THRESHOLD:
        return str(int(value))
    return repr(value)


def _normalize_numbers(value: Any) -> Any:
    """JSON 化する前に float を整数表記または null に揃える。"""
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if value.is_integer() and abs(value) < _EXPONENT_THRESHOLD:
            return int(value)
        return value
    if isinstance(value, dict):
        return {key: _normalize_numbers(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_numbers(item) for item in value]
    return value


def stringify_value(value: Any) -> str:
    """フラグ値を track プロパティ用の文字列に変換する。

    None は "null"、dict/list は JSON テキスト、数値は JavaScript の文字列表現
    (1.0 は "1"、NaN は "NaN") に合わせる。
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, (dict, list)):
        return json.dumps(
            _normalize_numbers(value), separators=(",", ":"), ensure_ascii=False
        )
    return str(value)


class PendoTelemetryHook:
    """評価結果を flag_evaluated イベントとして Pendo に送るフック。"""

    def __init__(
        self,
        track_event_secret: str,
        event_name: str = DEFAULT_EVENT_NAME,
        base_url: str = DEFAULT_BASE_URL,
        flag_filter: Callable[[str], bool] | None = None,
        reporter: EventReporter | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self._event_name = event_name
        self._flag_filter = flag_filter
        if reporter is None:
            config = TrackingConfig(
                base_url=base_url,
                track_event_secret=track_event_secret,
                timeout_seconds=timeout_seconds,
            )
            reporter = EventReporter(config, name="pendo-telemetry-hook")
        self._reporter = reporter

    @property
    def reporter(self) -> EventReporter:
        return self._reporter

    def after(
        self, hook_context: HookContext, details: FlagEvaluationDetails[Any]
    ) -> None:
        flag_key = hook_context.flag_key
        if self._flag_filter is not None and not self._flag_filter(flag_key):
            return
        if not hook_context.context.targeting_key:
            return

        properties = {
            "flag_key": flag_key,
            "flag_variant": details.variant or "unknown",
            "flag_reason": str(details.reason) if details.reason else "UNKNOWN",
            "flag_value": stringify_value(details.value),
            "provider_name": hook_context.provider_metadata.name,
        }
        self._reporter.track(self._event_name, hook_context.context, properties)
