"""pendo provider ライブラリの例外型定義"""

from __future__ import annotations


class PendoError(Exception):
    """pendo provider ライブラリのエラー基底クラス。"""

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class PendoErrorCodes:
    """PendoError のエラーコード定数。"""

    CONFIG_ERROR: str = "CONFIG_ERROR"
    READ_FILE: str = "READ_FILE"
    PARSE_YAML: str = "PARSE_YAML"
    VALIDATION: str = "VALIDATION"
    RATE_LIMITED: str = "RATE_LIMITED"
    REMOTE_UNAVAILABLE: str = "REMOTE_UNAVAILABLE"
    ENCODING_ERROR: str = "ENCODING_ERROR"


class ConfigurationError(PendoError):
    """必須設定の欠落・設定ファイル不正。"""

    def __init__(
        self,
        message: str,
        code: str = PendoErrorCodes.CONFIG_ERROR,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(code=code, message=message, cause=cause)


class RemoteRateLimitedError(PendoError):
    """Pendo API のレート制限 (HTTP 429)。"""

    def __init__(self, message: str = "Pendo API rate limit exceeded") -> None:
        super().__init__(code=PendoErrorCodes.RATE_LIMITED, message=message)


class RemoteUnavailableError(PendoError):
    """Pendo API の異常応答または通信失敗。"""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=PendoErrorCodes.REMOTE_UNAVAILABLE, message=message, cause=cause
        )
        self.status_code = status_code


class EncodingError(PendoError):
    """JZB エンコード・デコードの失敗。"""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(
            code=PendoErrorCodes.ENCODING_ERROR, message=message, cause=cause
        )
