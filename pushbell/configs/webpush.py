from pydantic import BaseModel, Field


class WebPushConfig(BaseModel):
    """Web Push delivery configuration.

    VAPID keys are required for every delivery; an empty key is reported as a
    configuration error when an alarm fires, not at startup.

    - ``GcmApiKey`` is only attached for endpoints on the legacy GCM push
      service family (``android.googleapis.com`` and ``fcm.googleapis.com/fcm/send``).
    - ``TimeoutSeconds`` is unset by default: a hung push service blocks the
      partition until the request resolves.
    """

    # Production MUST override via PUSHBELL_WebPush_VapidPrivateKey / VapidPublicKey.
    VapidPrivateKey: str = Field(default="", description="VAPID private key (URL-safe base64, 32-byte raw scalar)")
    VapidPublicKey: str = Field(default="", description="VAPID public key (URL-safe base64, 65-byte uncompressed point)")
    VapidSubject: str = Field(
        default="mailto:admin@pushbell.dev",
        description="VAPID ``sub`` claim (mailto: or https: URL)",
    )

    GcmApiKey: str = Field(default="", description="Legacy GCM server key for android.googleapis.com endpoints")

    Urgency: str = Field(default="normal", description="Urgency header: very-low | low | normal | high")
    TTL: int = Field(default=0, ge=0, description="Seconds the push service should retain the message")
    TimeoutSeconds: float | None = Field(default=None, description="Outbound request timeout; None waits forever")
    Payload: str = Field(default="Hello from pushbell!", description="Notification body sent on alarm")
