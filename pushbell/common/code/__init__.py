from .delivery_error_code import ClassifiedDeliveryError, DeliveryErrorCode, classify_delivery_error
from .error_code import ErrCode, ErrCodeError

__all__ = [
    "ClassifiedDeliveryError",
    "DeliveryErrorCode",
    "ErrCode",
    "ErrCodeError",
    "classify_delivery_error",
]
