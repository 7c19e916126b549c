from .alarm import AlarmScheduler, ArmResult
from .subscription_record import SubscriptionStore

__all__ = ["AlarmScheduler", "ArmResult", "SubscriptionStore"]
