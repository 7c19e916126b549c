"""VAPID key validation and per-delivery option assembly."""

from __future__ import annotations

import logging

from pushbell.common.code import ErrCode
from pushbell.configs import WebPushConfig, configs
from pushbell.core.notification.transport import DeliveryOptions, is_gcm_endpoint

logger = logging.getLogger(__name__)


def ensure_vapid_keys(webpush: WebPushConfig | None = None) -> bool:
    """Report whether the VAPID key pair is configured.

    Called at startup for an early warning only; a missing key does not stop
    the service, it fails each delivery instead.
    """
    webpush = webpush or configs.WebPush

    if webpush.VapidPublicKey and webpush.VapidPrivateKey:
        logger.info("VAPID keys ready (public=%s…)", webpush.VapidPublicKey[:20])
        return True

    logger.warning("VAPID keys not configured, alarms will fail until they are set")
    return False


def build_delivery_options(endpoint: str, webpush: WebPushConfig | None = None) -> DeliveryOptions:
    """Validate secrets for *endpoint* and build the transport options.

    Raises ``ErrCodeError`` when a required key is missing.
    """
    webpush = webpush or configs.WebPush

    if not webpush.VapidPrivateKey:
        raise ErrCode.VAPID_NOT_CONFIGURED.with_messages("Missing VAPID private key")
    if not webpush.VapidPublicKey:
        raise ErrCode.VAPID_NOT_CONFIGURED.with_messages("Missing VAPID public key")

    gcm_api_key: str | None = None
    if is_gcm_endpoint(endpoint):
        if not webpush.GcmApiKey:
            raise ErrCode.GCM_KEY_NOT_CONFIGURED.with_messages(f"Missing GCM API key for {endpoint[:60]}")
        gcm_api_key = webpush.GcmApiKey

    return DeliveryOptions(
        vapid_private_key=webpush.VapidPrivateKey,
        vapid_public_key=webpush.VapidPublicKey,
        vapid_subject=webpush.VapidSubject,
        urgency=webpush.Urgency,
        ttl=webpush.TTL,
        timeout=webpush.TimeoutSeconds,
        gcm_api_key=gcm_api_key,
    )
