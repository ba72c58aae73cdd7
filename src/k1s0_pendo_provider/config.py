"""Pendo プロバイダー設定（pydantic BaseModel）"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError, PendoErrorCodes

DEFAULT_BASE_URL = "https://data.pendo.io"
DEFAULT_CACHE_TTL_MS = 60_000


class TrackingConfig(BaseModel):
    """track イベント送信に必要な設定。"""

    base_url: str = DEFAULT_BASE_URL
    track_event_secret: str | None = None
    timeout_seconds: float | None = Field(default=None, gt=0)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class PendoProviderConfig(TrackingConfig):
    """Pendo プロバイダー設定。

    api_key / default_url の空文字チェックは PendoProvider.initialize で行う。
    """

    api_key: str
    default_url: str
    cache_ttl_ms: int = Field(default=DEFAULT_CACHE_TTL_MS, ge=0)


def _read_yaml(path: Path) -> dict[str, Any]:
    """YAML ファイルを読み込む。"""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            code=PendoErrorCodes.READ_FILE,
            message=f"Failed to read config file: {path}",
            cause=e,
        ) from e
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            code=PendoErrorCodes.PARSE_YAML,
            message=f"Failed to parse YAML: {path}",
            cause=e,
        ) from e
    if not isinstance(data, dict):
        raise ConfigurationError(
            code=PendoErrorCodes.PARSE_YAML,
            message=f"Config root must be a mapping: {path}",
        )
    return data


def load(path: Path) -> PendoProviderConfig:
    """設定ファイルを読み込んで PendoProviderConfig を返す。

    トップレベルに ``pendo:`` セクションがあればその中身を使う。
    """
    data = _read_yaml(path)
    section = data.get("pendo", data)
    try:
        return PendoProviderConfig.model_validate(section)
    except ValidationError as e:
        raise ConfigurationError(
            code=PendoErrorCodes.VALIDATION,
            message=f"Config validation failed: {e}",
            cause=e,
        ) from e
