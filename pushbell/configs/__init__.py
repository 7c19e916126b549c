from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .scheduler import FailurePolicy, SchedulerConfig
from .storage import StorageConfig
from .webpush import WebPushConfig


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PUSHBELL_",
        env_nested_delimiter="_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    Host: str = Field(default="0.0.0.0", description="Bind host")
    Port: int = Field(default=8787, description="Bind port")
    Debug: bool = Field(default=False, description="Enable auto-reload and debug logging")
    LogLevel: str = Field(default="INFO", description="Root log level")

    WebPush: WebPushConfig = Field(default_factory=lambda: WebPushConfig(), description="Web Push delivery")
    Storage: StorageConfig = Field(default_factory=lambda: StorageConfig(), description="Partition storage")
    Scheduler: SchedulerConfig = Field(default_factory=lambda: SchedulerConfig(), description="Alarm scheduling")


configs = AppConfig()

__all__ = [
    "AppConfig",
    "FailurePolicy",
    "SchedulerConfig",
    "StorageConfig",
    "WebPushConfig",
    "configs",
]
