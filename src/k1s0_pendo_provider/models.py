"""pendo provider データモデル"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Generic, TypeVar

T = TypeVar("T")

FlagSet = frozenset[str]


class Reason(StrEnum):
    """解決理由。"""

    TARGETING_MATCH = "TARGETING_MATCH"
    DEFAULT = "DEFAULT"
    ERROR = "ERROR"


class ErrorCode(StrEnum):
    """解決結果のエラーコード。"""

    GENERAL = "GENERAL"
    PROVIDER_NOT_READY = "PROVIDER_NOT_READY"
    PARSE_ERROR = "PARSE_ERROR"


class ProviderStatus(StrEnum):
    """プロバイダーのライフサイクル状態。"""

    NOT_READY = "NOT_READY"
    READY = "READY"


class FlagType(StrEnum):
    """フラグ値の型。"""

    BOOLEAN = "boolean"
    STRING = "string"
    NUMBER = "number"
    OBJECT = "object"


@dataclass(frozen=True)
class ProviderMetadata:
    """プロバイダーメタデータ。"""

    name: str


@dataclass(frozen=True)
class EvaluationContext:
    """フラグ評価コンテキスト。

    targeting_key は Pendo の visitor ID として扱う。
    """

    targeting_key: str | None = None
    account_id: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def visitor_id(self) -> str | None:
        return self.targeting_key


@dataclass(frozen=True)
class ResolutionDetails(Generic[T]):
    """プロバイダーの解決結果。"""

    value: T
    reason: Reason
    variant: str | None = None
    error_code: ErrorCode | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class FlagEvaluationDetails(Generic[T]):
    """クライアント・フックに渡される評価結果。"""

    flag_key: str
    value: T
    reason: Reason | None = None
    variant: str | None = None
    error_code: ErrorCode | None = None
    error_message: str | None = None

    @classmethod
    def from_resolution(
        cls, flag_key: str, resolution: ResolutionDetails[T]
    ) -> FlagEvaluationDetails[T]:
        return cls(
            flag_key=flag_key,
            value=resolution.value,
            reason=resolution.reason,
            variant=resolution.variant,
            error_code=resolution.error_code,
            error_message=resolution.error_message,
        )


@dataclass(frozen=True)
class HookContext:
    """フック実行時のコンテキスト。"""

    flag_key: str
    default_value: Any
    flag_value_type: FlagType
    context: EvaluationContext
    provider_metadata: ProviderMetadata
