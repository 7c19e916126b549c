from enum import StrEnum

from pydantic import BaseModel, Field


class FailurePolicy(StrEnum):
    """What a partition does with its record after a failed delivery."""

    KEEP = "keep"
    PRUNE_GONE = "prune_gone"


class SchedulerConfig(BaseModel):
    DeliveryDelaySeconds: float = Field(default=10.0, gt=0, description="Fixed delay between register and delivery")
    OnFailure: FailurePolicy = Field(
        default=FailurePolicy.KEEP,
        description="keep: leave the record after any failure; prune_gone: delete it on 404/410",
    )
    FireRetryLimit: int = Field(default=3, ge=1, description="Attempts for an alarm whose handler raises")
    FireRetryBaseSeconds: float = Field(default=2.0, gt=0, description="First retry delay, doubled per attempt")
