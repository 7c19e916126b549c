"""Web Push subscription record: at most one row per partition."""

from sqlmodel import Field, SQLModel

# Physical layout every partition is migrated to, in column order
SUBSCRIPTION_RECORD_COLUMNS: tuple[str, ...] = ("endpoint", "keys_p256dh", "keys_auth")


class SubscriptionRecord(SQLModel, table=True):
    """Browser Push API subscription owned by one partition."""

    __tablename__ = "subscription_records"  # type: ignore

    endpoint: str = Field(primary_key=True, description="Browser Push Service URL")
    keys_p256dh: str = Field(description="P-256 ECDH public key")
    keys_auth: str = Field(description="Authentication secret")
