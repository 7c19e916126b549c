"""Unit tests for the pywebpush-backed transport."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import requests
from pywebpush import WebPushException

from pushbell.core.notification import DeliveryError, DeliveryOptions, PushSubscriptionInfo, WebPushTransport

SUBSCRIPTION = PushSubscriptionInfo(endpoint="https://push.example/abc", p256dh="P", auth="A")
OPTIONS = DeliveryOptions(
    vapid_private_key="priv",
    vapid_public_key="pub",
    vapid_subject="mailto:ops@example.com",
    ttl=30,
)


def _response(status_code: int, text: str = "", headers: dict[str, str] | None = None) -> SimpleNamespace:
    return SimpleNamespace(status_code=status_code, text=text, headers=headers or {}, reason="")


async def test_send_returns_status_and_body() -> None:
    with patch("pushbell.core.notification.transport.webpush", return_value=_response(201, "ok")) as webpush:
        result = await WebPushTransport().send(SUBSCRIPTION, "hello", OPTIONS)

    assert result.status_code == 201
    assert result.body == "ok"
    kwargs = webpush.call_args.kwargs
    assert kwargs["subscription_info"] == {"endpoint": "https://push.example/abc", "keys": {"p256dh": "P", "auth": "A"}}
    assert kwargs["data"] == "hello"
    assert kwargs["vapid_private_key"] == "priv"
    assert kwargs["vapid_claims"] == {"sub": "mailto:ops@example.com"}
    assert kwargs["headers"] == {"Urgency": "normal"}
    assert kwargs["ttl"] == 30


async def test_push_service_rejection_becomes_delivery_error() -> None:
    error = WebPushException("Push failed: 410 Gone", response=_response(410, "expired", {"x-reason": "gone"}))

    with patch("pushbell.core.notification.transport.webpush", side_effect=error):
        with pytest.raises(DeliveryError) as exc_info:
            await WebPushTransport().send(SUBSCRIPTION, "hello", OPTIONS)

    assert exc_info.value.status_code == 410
    assert exc_info.value.body == "expired"
    assert exc_info.value.headers == {"x-reason": "gone"}
    assert exc_info.value.endpoint == "https://push.example/abc"


async def test_network_failure_has_no_status_code() -> None:
    with patch(
        "pushbell.core.notification.transport.webpush",
        side_effect=requests.ConnectionError("connection refused"),
    ):
        with pytest.raises(DeliveryError) as exc_info:
            await WebPushTransport().send(SUBSCRIPTION, "hello", OPTIONS)

    assert exc_info.value.status_code is None
    assert "connection refused" in str(exc_info.value)


async def test_gcm_endpoint_sends_with_server_key() -> None:
    gcm_subscription = PushSubscriptionInfo(endpoint="https://android.googleapis.com/gcm/send/reg-1", p256dh="P", auth="A")
    gcm_options = DeliveryOptions(
        vapid_private_key="priv",
        vapid_public_key="pub",
        vapid_subject="mailto:ops@example.com",
        gcm_api_key="server-key",
    )
    pusher = MagicMock()
    pusher.send.return_value = _response(200, "id=1")

    with (
        patch("pushbell.core.notification.transport.WebPusher", return_value=pusher) as pusher_cls,
        patch("pushbell.core.notification.transport.webpush") as webpush,
    ):
        result = await WebPushTransport().send(gcm_subscription, "hello", gcm_options)

    assert result.status_code == 200
    webpush.assert_not_called()
    pusher_cls.assert_called_once()
    assert pusher.send.call_args.kwargs["gcm_key"] == "server-key"


async def test_gcm_rejection_becomes_delivery_error() -> None:
    gcm_subscription = PushSubscriptionInfo(endpoint="https://android.googleapis.com/gcm/send/reg-1", p256dh="P", auth="A")
    gcm_options = DeliveryOptions(
        vapid_private_key="priv", vapid_public_key="pub", vapid_subject="mailto:x@y", gcm_api_key="server-key"
    )
    pusher = MagicMock()
    pusher.send.return_value = _response(401, "bad key")

    with patch("pushbell.core.notification.transport.WebPusher", return_value=pusher):
        with pytest.raises(DeliveryError) as exc_info:
            await WebPushTransport().send(gcm_subscription, "hello", gcm_options)

    assert exc_info.value.status_code == 401
    assert exc_info.value.body == "bad key"
