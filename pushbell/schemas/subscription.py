from pydantic import BaseModel, Field, field_validator

from pushbell.core.notification.transport import PushSubscriptionInfo


class SubscriptionKeys(BaseModel):
    p256dh: str = Field(min_length=1, description="P-256 ECDH public key")
    auth: str = Field(min_length=1, description="Authentication secret")


class PushSubscriptionRequest(BaseModel):
    """Browser ``PushSubscription.toJSON()`` body."""

    endpoint: str = Field(min_length=1)
    keys: SubscriptionKeys
    expirationTime: int | None = None  # sent by browsers, unused

    @field_validator("endpoint")
    @classmethod
    def _endpoint_is_https(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("https://", "http://")):
            raise ValueError("endpoint must be an http(s) URL")
        return value

    def to_info(self) -> PushSubscriptionInfo:
        return PushSubscriptionInfo(endpoint=self.endpoint, p256dh=self.keys.p256dh, auth=self.keys.auth)


class PartitionStateResponse(BaseModel):
    key: str
    has_subscription: bool
    endpoint: str | None
    wake_at_ms: int | None
    schema_action: str | None
