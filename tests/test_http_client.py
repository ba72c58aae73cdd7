"""PendoHttpClient のユニットテスト（respx モック）"""

import json

import httpx
import pytest
import respx
from k1s0_pendo_provider import (
    ConfigurationError,
    PendoHttpClient,
    PendoProviderConfig,
    PendoTrackClient,
    RemoteRateLimitedError,
    RemoteUnavailableError,
    TrackingConfig,
    decode_jzb,
)

BASE_URL = "https://data.pendo.io"
SEGMENT_URL = f"{BASE_URL}/data/segmentflag.json/test-api-key"
TRACK_URL = f"{BASE_URL}/data/track"


def make_client(**overrides: object) -> PendoHttpClient:
    values: dict[str, object] = {"api_key": "test-api-key", "default_url": "https://example.com"}
    values.update(overrides)
    return PendoHttpClient(PendoProviderConfig(**values))


@respx.mock
async def test_fetch_segment_flags_success() -> None:
    """200 レスポンスの segmentFlags がフラグ集合になること。"""
    respx.get(SEGMENT_URL).mock(
        return_value=httpx.Response(200, json={"segmentFlags": ["flag1", "flag2"]})
    )
    flags = await make_client().fetch_segment_flags("user-123")
    assert flags == frozenset({"flag1", "flag2"})


@respx.mock
async def test_fetch_segment_flags_request_format() -> None:
    """GET + Accept ヘッダー + jzb クエリで送信されること。"""
    route = respx.get(SEGMENT_URL).mock(
        return_value=httpx.Response(200, json={"segmentFlags": []})
    )
    await make_client().fetch_segment_flags("user-123", "account-456")

    request = route.calls.last.request
    assert request.method == "GET"
    assert request.headers["Accept"] == "application/json"
    token = request.url.params["jzb"]
    assert decode_jzb(token) == {
        "visitorId": "user-123",
        "accountId": "account-456",
        "url": "https://example.com",
    }


@respx.mock
async def test_fetch_segment_flags_omits_missing_account() -> None:
    """accountId が無い場合はペイロードから省くこと。"""
    route = respx.get(SEGMENT_URL).mock(
        return_value=httpx.Response(200, json={"segmentFlags": []})
    )
    await make_client().fetch_segment_flags("user-123")
    token = route.calls.last.request.url.params["jzb"]
    assert decode_jzb(token) == {"visitorId": "user-123", "url": "https://example.com"}


@respx.mock
async def test_fetch_segment_flags_custom_base_url() -> None:
    """base_url の設定が反映されること。"""
    route = respx.get("https://custom.pendo.io/data/segmentflag.json/test-api-key").mock(
        return_value=httpx.Response(200, json={"segmentFlags": ["x"]})
    )
    flags = await make_client(base_url="https://custom.pendo.io").fetch_segment_flags("u")
    assert route.called
    assert flags == frozenset({"x"})


@respx.mock
async def test_fetch_segment_flags_visitor_unknown() -> None:
    """202（visitor 未認識）は空集合でエラーではないこと。"""
    respx.get(SEGMENT_URL).mock(return_value=httpx.Response(202, json={}))
    assert await make_client().fetch_segment_flags("user-123") == frozenset()


@respx.mock
async def test_fetch_segment_flags_opted_out() -> None:
    """451（オプトアウト・ブロック）は空集合でエラーではないこと。"""
    respx.get(SEGMENT_URL).mock(return_value=httpx.Response(451, json={}))
    assert await make_client().fetch_segment_flags("user-123") == frozenset()


@respx.mock
async def test_fetch_segment_flags_missing_field() -> None:
    """segmentFlags が無い 200 レスポンスは空集合。"""
    respx.get(SEGMENT_URL).mock(return_value=httpx.Response(200, json={}))
    assert await make_client().fetch_segment_flags("user-123") == frozenset()


@respx.mock
async def test_fetch_segment_flags_empty_body() -> None:
    """ボディが空の 2xx レスポンスは空集合。"""
    respx.get(SEGMENT_URL).mock(return_value=httpx.Response(204))
    assert await make_client().fetch_segment_flags("user-123") == frozenset()


@respx.mock
async def test_fetch_segment_flags_rate_limited() -> None:
    """429 は RemoteRateLimitedError。"""
    respx.get(SEGMENT_URL).mock(return_value=httpx.Response(429))
    with pytest.raises(RemoteRateLimitedError) as exc_info:
        await make_client().fetch_segment_flags("user-123")
    assert "rate limit" in exc_info.value.message


@respx.mock
async def test_fetch_segment_flags_server_error() -> None:
    """その他の非成功ステータスはステータスとテキストを含む RemoteUnavailableError。"""
    respx.get(SEGMENT_URL).mock(return_value=httpx.Response(500, text="oops"))
    with pytest.raises(RemoteUnavailableError) as exc_info:
        await make_client().fetch_segment_flags("user-123")
    assert exc_info.value.message == "Pendo API error: 500 Internal Server Error"
    assert exc_info.value.status_code == 500


@respx.mock
async def test_fetch_segment_flags_network_error() -> None:
    """通信失敗は元のメッセージを持つ RemoteUnavailableError。"""
    respx.get(SEGMENT_URL).mock(side_effect=httpx.ConnectError("Network error"))
    with pytest.raises(RemoteUnavailableError) as exc_info:
        await make_client().fetch_segment_flags("user-123")
    assert exc_info.value.message == "Network error"
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@respx.mock
async def test_fetch_segment_flags_invalid_json() -> None:
    """解析できないボディは RemoteUnavailableError。"""
    respx.get(SEGMENT_URL).mock(return_value=httpx.Response(200, text="<html>"))
    with pytest.raises(RemoteUnavailableError):
        await make_client().fetch_segment_flags("user-123")


@respx.mock
async def test_fetch_segment_flags_null_field() -> None:
    """segmentFlags が null の 200 レスポンスは空集合。"""
    respx.get(SEGMENT_URL).mock(return_value=httpx.Response(200, json={"segmentFlags": None}))
    assert await make_client().fetch_segment_flags("user-123") == frozenset()


@respx.mock
async def test_fetch_segment_flags_not_a_list() -> None:
    """segmentFlags が配列でなければ RemoteUnavailableError。"""
    respx.get(SEGMENT_URL).mock(return_value=httpx.Response(200, json={"segmentFlags": 5}))
    with pytest.raises(RemoteUnavailableError) as exc_info:
        await make_client().fetch_segment_flags("user-123")
    assert exc_info.value.message == "Pendo API error: invalid segmentFlags"


@respx.mock
async def test_fetch_segment_flags_non_string_entries() -> None:
    """文字列以外の要素を含む segmentFlags は RemoteUnavailableError。"""
    respx.get(SEGMENT_URL).mock(
        return_value=httpx.Response(200, json={"segmentFlags": ["flag1", 2]})
    )
    with pytest.raises(RemoteUnavailableError):
        await make_client().fetch_segment_flags("user-123")


@respx.mock
async def test_fetch_segment_flags_body_not_an_object() -> None:
    """オブジェクト以外の JSON ボディは RemoteUnavailableError。"""
    respx.get(SEGMENT_URL).mock(return_value=httpx.Response(200, json=["flag1"]))
    with pytest.raises(RemoteUnavailableError):
        await make_client().fetch_segment_flags("user-123")


@respx.mock
async def test_send_track_event() -> None:
    """POST /data/track にシークレットヘッダー付きで送信されること。"""
    route = respx.post(TRACK_URL).mock(return_value=httpx.Response(200))
    client = make_client(track_event_secret="test-secret")
    await client.send_track_event({"type": "track", "event": "clicked", "visitorId": "u"})

    request = route.calls.last.request
    assert request.headers["Content-Type"] == "application/json"
    assert request.headers["x-pendo-track-event-secret"] == "test-secret"
    assert json.loads(request.content) == {"type": "track", "event": "clicked", "visitorId": "u"}


async def test_send_track_event_without_secret() -> None:
    """シークレット未設定なら ConfigurationError。"""
    with pytest.raises(ConfigurationError):
        await make_client().send_track_event({"type": "track"})


@respx.mock
async def test_send_track_event_server_error() -> None:
    """track の非成功ステータスは RemoteUnavailableError。"""
    respx.post(TRACK_URL).mock(return_value=httpx.Response(503))
    with pytest.raises(RemoteUnavailableError):
        await make_client(track_event_secret="s").send_track_event({"type": "track"})


@respx.mock
async def test_track_client_needs_only_tracking_config() -> None:
    """送信専用クライアントは api_key / default_url 無しで使えること。"""
    route = respx.post("https://custom.pendo.io/data/track").mock(
        return_value=httpx.Response(200)
    )
    client = PendoTrackClient(
        TrackingConfig(base_url="https://custom.pendo.io", track_event_secret="s")
    )
    await client.send_track_event({"type": "track"})
    assert route.calls.last.request.headers["x-pendo-track-event-secret"] == "s"
