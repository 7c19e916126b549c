from .transport import (
    DeliveryError,
    DeliveryOptions,
    DeliveryResult,
    DeliveryTransport,
    PushSubscriptionInfo,
    WebPushTransport,
    is_gcm_endpoint,
)
from .vapid import build_delivery_options, ensure_vapid_keys

__all__ = [
    "DeliveryError",
    "DeliveryOptions",
    "DeliveryResult",
    "DeliveryTransport",
    "PushSubscriptionInfo",
    "WebPushTransport",
    "build_delivery_options",
    "ensure_vapid_keys",
    "is_gcm_endpoint",
]
