from .alarm import AlarmSlot
from .subscription_record import SUBSCRIPTION_RECORD_COLUMNS, SubscriptionRecord

__all__ = ["AlarmSlot", "SUBSCRIPTION_RECORD_COLUMNS", "SubscriptionRecord"]
