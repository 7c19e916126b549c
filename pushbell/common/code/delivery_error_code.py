"""Delivery error codes for structured logging of failed push attempts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import uuid4

if TYPE_CHECKING:
    from pushbell.core.notification.transport import DeliveryError


class DeliveryErrorCode(StrEnum):
    """Machine-readable classification of a push-service rejection.

    Format: {category}.{specific_error}
    """

    # Subscription no longer valid on the push service
    SUBSCRIPTION_GONE = "subscription.gone"
    SUBSCRIPTION_NOT_FOUND = "subscription.not_found"

    # Request rejected
    REQUEST_UNAUTHORIZED = "request.unauthorized"
    REQUEST_PAYLOAD_TOO_LARGE = "request.payload_too_large"
    REQUEST_RATE_LIMITED = "request.rate_limited"
    REQUEST_INVALID = "request.invalid"

    # Push service or network
    SERVICE_ERROR = "service.error"
    NETWORK_ERROR = "network.error"

    UNKNOWN = "unknown"

    @property
    def category(self) -> str:
        return self.value.split(".")[0]

    @property
    def permanent(self) -> bool:
        """Whether the subscription itself is dead and will never accept a push again."""
        return self in (
            DeliveryErrorCode.SUBSCRIPTION_GONE,
            DeliveryErrorCode.SUBSCRIPTION_NOT_FOUND,
        )

    @property
    def recoverable(self) -> bool:
        """Whether the same request could succeed if sent again later."""
        return self in (
            DeliveryErrorCode.REQUEST_RATE_LIMITED,
            DeliveryErrorCode.SERVICE_ERROR,
            DeliveryErrorCode.NETWORK_ERROR,
        )


_STATUS_CODES: dict[int, DeliveryErrorCode] = {
    400: DeliveryErrorCode.REQUEST_INVALID,
    401: DeliveryErrorCode.REQUEST_UNAUTHORIZED,
    403: DeliveryErrorCode.REQUEST_UNAUTHORIZED,
    404: DeliveryErrorCode.SUBSCRIPTION_NOT_FOUND,
    410: DeliveryErrorCode.SUBSCRIPTION_GONE,
    413: DeliveryErrorCode.REQUEST_PAYLOAD_TOO_LARGE,
    429: DeliveryErrorCode.REQUEST_RATE_LIMITED,
}


@dataclass(frozen=True)
class ClassifiedDeliveryError:
    code: DeliveryErrorCode
    status_code: int | None
    endpoint: str
    error_ref: str  # e.g. "DLV-ABCD1234", printed in every log line of one failure
    occurred_at: str  # ISO 8601 timestamp


def classify_status(status_code: int | None) -> DeliveryErrorCode:
    if status_code is None:
        return DeliveryErrorCode.NETWORK_ERROR
    if status_code in _STATUS_CODES:
        return _STATUS_CODES[status_code]
    if status_code >= 500:
        return DeliveryErrorCode.SERVICE_ERROR
    return DeliveryErrorCode.UNKNOWN


def classify_delivery_error(error: DeliveryError) -> ClassifiedDeliveryError:
    return ClassifiedDeliveryError(
        code=classify_status(error.status_code),
        status_code=error.status_code,
        endpoint=error.endpoint,
        error_ref=f"DLV-{uuid4().hex[:8].upper()}",
        occurred_at=datetime.now(timezone.utc).isoformat(),
    )
