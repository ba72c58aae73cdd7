"""k1s0 pendo provider library."""

from .cache import SegmentCache, cache_key
from .client import FeatureFlagClient
from .config import PendoProviderConfig, TrackingConfig, load
from .exceptions import (
    ConfigurationError,
    EncodingError,
    PendoError,
    PendoErrorCodes,
    RemoteRateLimitedError,
    RemoteUnavailableError,
)
from .hooks import Hook, PendoTelemetryHook, stringify_value
from .http_client import PendoHttpClient, PendoTrackClient
from .jzb import decode_jzb, encode_jzb
from .logger import configure_logging
from .models import (
    ErrorCode,
    EvaluationContext,
    FlagEvaluationDetails,
    FlagSet,
    FlagType,
    HookContext,
    ProviderMetadata,
    ProviderStatus,
    Reason,
    ResolutionDetails,
)
from .provider import PendoProvider
from .reporter import EventReporter, build_track_payload

__all__ = [
    "ConfigurationError",
    "EncodingError",
    "ErrorCode",
    "EvaluationContext",
    "EventReporter",
    "FeatureFlagClient",
    "FlagEvaluationDetails",
    "FlagSet",
    "FlagType",
    "Hook",
    "HookContext",
    "PendoError",
    "PendoErrorCodes",
    "PendoHttpClient",
    "PendoProvider",
    "PendoProviderConfig",
    "PendoTelemetryHook",
    "PendoTrackClient",
    "ProviderMetadata",
    "ProviderStatus",
    "Reason",
    "RemoteRateLimitedError",
    "RemoteUnavailableError",
    "ResolutionDetails",
    "SegmentCache",
    "TrackingConfig",
    "build_track_payload",
    "cache_key",
    "configure_logging",
    "decode_jzb",
    "encode_jzb",
    "load",
    "stringify_value",
]
