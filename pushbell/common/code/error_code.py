"""Application error codes.

Every failure that crosses a partition boundary is raised as an
``ErrCodeError`` so the HTTP layer and the alarm runtime can tell fatal
conditions apart from transient delivery failures.
"""

from __future__ import annotations

from enum import IntEnum


class ErrCode(IntEnum):
    # Generic
    UNKNOWN_ERROR = 1000
    INTERNAL_SERVER_ERROR = 1001

    # Configuration
    VAPID_NOT_CONFIGURED = 2000
    GCM_KEY_NOT_CONFIGURED = 2001

    # Partition storage
    SCHEMA_MIGRATION_FAILED = 3000
    PARTITION_CLOSED = 3001
    INVALID_PARTITION_KEY = 3002

    # Subscriptions
    SUBSCRIPTION_NOT_FOUND = 4000
    INVALID_SUBSCRIPTION = 4001

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS.get(self, 500)

    def with_messages(self, *messages: str) -> ErrCodeError:
        return ErrCodeError(self, messages)

    def with_errors(self, *errors: BaseException) -> ErrCodeError:
        return ErrCodeError(self, tuple(str(err) for err in errors if err))


_HTTP_STATUS: dict[ErrCode, int] = {
    ErrCode.INVALID_PARTITION_KEY: 400,
    ErrCode.INVALID_SUBSCRIPTION: 400,
    ErrCode.SUBSCRIPTION_NOT_FOUND: 404,
    ErrCode.PARTITION_CLOSED: 503,
}


class ErrCodeError(Exception):
    def __init__(self, code: ErrCode, messages: tuple[str, ...] = ()) -> None:
        self.code = code
        self.messages = tuple(msg for msg in messages if msg)
        super().__init__(str(self))

    def __str__(self) -> str:
        head = f"{self.code.name}({self.code.value})"
        if self.messages:
            return f"{head}: {'; '.join(self.messages)}"
        return head

    def as_dict(self) -> dict[str, object]:
        if self.messages:
            primary, *rest = self.messages
            result: dict[str, object] = {"code": self.code.value, "msg": primary}
            if rest:
                result["info"] = rest
            return result
        return {"code": self.code.value, "msg": self.code.name.replace("_", " ").title(), "info": []}
