"""Outbound Web Push transport via pywebpush.

The transport makes exactly one HTTP request per ``send`` and never retries.
Every failure (push-service rejection or network error) is raised as a
:class:`DeliveryError` carrying the status code, body, headers and endpoint
so callers can log the full diagnostic without knowing about pywebpush.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import urlparse

import requests
from pywebpush import WebPusher, WebPushException, webpush

logger = logging.getLogger(__name__)

# Legacy Google push endpoints that authenticate with a server key instead of VAPID
_GCM_ENDPOINT_PREFIXES = (
    "https://android.googleapis.com/gcm/send",
    "https://fcm.googleapis.com/fcm/send",
)


@dataclass(frozen=True, slots=True)
class PushSubscriptionInfo:
    endpoint: str
    p256dh: str
    auth: str

    def as_dict(self) -> dict[str, Any]:
        """Shape expected by pywebpush's ``subscription_info``."""
        return {"endpoint": self.endpoint, "keys": {"p256dh": self.p256dh, "auth": self.auth}}

    @property
    def host(self) -> str:
        return urlparse(self.endpoint).netloc


@dataclass(frozen=True, slots=True)
class DeliveryOptions:
    vapid_private_key: str
    vapid_public_key: str
    vapid_subject: str
    urgency: str = "normal"
    ttl: int = 0
    timeout: float | None = None
    gcm_api_key: str | None = None


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    status_code: int
    body: str


class DeliveryError(Exception):
    """A push attempt that did not reach a 2xx response."""

    def __init__(
        self,
        message: str,
        *,
        endpoint: str,
        status_code: int | None = None,
        body: str = "",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code
        self.body = body
        self.headers: dict[str, str] = headers or {}


class DeliveryTransport(Protocol):
    async def send(
        self, subscription: PushSubscriptionInfo, payload: str, options: DeliveryOptions
    ) -> DeliveryResult: ...


def is_gcm_endpoint(endpoint: str) -> bool:
    return endpoint.startswith(_GCM_ENDPOINT_PREFIXES)


@dataclass
class WebPushTransport:
    """pywebpush-backed transport. The blocking request runs in a worker thread."""

    session: requests.Session | None = field(default=None)

    async def send(self, subscription: PushSubscriptionInfo, payload: str, options: DeliveryOptions) -> DeliveryResult:
        return await asyncio.to_thread(self._send_sync, subscription, payload, options)

    def _send_sync(
        self, subscription: PushSubscriptionInfo, payload: str, options: DeliveryOptions
    ) -> DeliveryResult:
        headers = {"Urgency": options.urgency}
        try:
            if options.gcm_api_key and is_gcm_endpoint(subscription.endpoint):
                response = WebPusher(subscription.as_dict(), requests_session=self.session).send(
                    data=payload,
                    headers=headers,
                    ttl=options.ttl,
                    gcm_key=options.gcm_api_key,
                    timeout=options.timeout,
                )
                if response.status_code > 202:
                    raise DeliveryError(
                        f"Push failed: {response.status_code} {response.reason}",
                        endpoint=subscription.endpoint,
                        status_code=response.status_code,
                        body=response.text,
                        headers=dict(response.headers),
                    )
            else:
                response = webpush(
                    subscription_info=subscription.as_dict(),
                    data=payload,
                    vapid_private_key=options.vapid_private_key,
                    # pywebpush fills in ``aud`` and ``exp`` on this dict, so it must be fresh per call
                    vapid_claims={"sub": options.vapid_subject},
                    ttl=options.ttl,
                    timeout=options.timeout,
                    headers=headers,
                    requests_session=self.session,
                )
        except WebPushException as e:
            resp = getattr(e, "response", None)
            raise DeliveryError(
                str(e),
                endpoint=subscription.endpoint,
                status_code=getattr(resp, "status_code", None),
                body=getattr(resp, "text", "") or "",
                headers=dict(resp.headers) if resp is not None else {},
            ) from e
        except requests.RequestException as e:
            raise DeliveryError(str(e), endpoint=subscription.endpoint) from e

        logger.debug("Push accepted by %s (status=%s)", subscription.host, response.status_code)
        return DeliveryResult(status_code=response.status_code, body=response.text)
