"""k1s0_pendo_provider.* ロガーの出力設定"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

LOGGER_NAMESPACE = "k1s0_pendo_provider"


def configure_logging(
    level: str = "INFO", format: str = "json", stream: TextIO | None = None
) -> None:
    """プロバイダー / レポーター / クライアントのログ出力先を設定する。

    structlog のイベントを stdlib の ``k1s0_pendo_provider`` ロガーへ流し、
    そのロガーだけにハンドラーとレベルを設定する。ルートロガーには触れない。
    provider / reporter の ``provider`` ``reporter`` などの束縛値はそのまま
    出力に含まれる。structlog の設定はプロセス全体に及ぶため、アプリケーション側で
    structlog を設定している場合は呼び出さずにそちらの設定に任せる。

    Args:
        level: ログレベル ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        format: 出力形式 ("json" or "text")
        stream: 出力先。省略時は標準エラー出力
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # 再設定を既存のロガーにも反映させる
        cache_logger_on_first_use=False,
    )

    renderer: structlog.types.Processor
    if format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    library_logger = logging.getLogger(LOGGER_NAMESPACE)
    library_logger.handlers.clear()
    library_logger.addHandler(handler)
    library_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    library_logger.propagate = False
