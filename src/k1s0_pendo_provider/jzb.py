"""JZB エンコーディング（JSON → zlib → URL-safe Base64）"""

from __future__ import annotations

import base64
import json
import zlib
from collections.abc import Mapping
from typing import Any

from .exceptions import EncodingError


def encode_jzb(payload: Mapping[str, Any]) -> str:
    """ペイロードを segmentflag.json の jzb クエリパラメータ形式にエンコードする。

    Args:
        payload: JSON シリアライズ可能なマッピング

    Returns:
        ``^[A-Za-z0-9_-]+$`` にマッチするトークン

    Raises:
        EncodingError: JSON にシリアライズできない場合（循環参照など）
    """
    try:
        text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise EncodingError(f"Failed to serialize JZB payload: {e}", cause=e) from e
    compressed = zlib.compress(text.encode("utf-8"))
    return base64.urlsafe_b64encode(compressed).decode("ascii").rstrip("=")


def decode_jzb(token: str) -> Any:
    """encode_jzb の逆変換。"""
    padded = token + "=" * (-len(token) % 4)
    try:
        compressed = base64.urlsafe_b64decode(padded.encode("ascii"))
        return json.loads(zlib.decompress(compressed).decode("utf-8"))
    except (ValueError, zlib.error) as e:
        raise EncodingError(f"Failed to decode JZB token: {e}", cause=e) from e
