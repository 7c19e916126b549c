from sqlalchemy import BigInteger, Column
from sqlmodel import Field, SQLModel

ALARM_SLOT_ID = 0


class AlarmSlot(SQLModel, table=True):
    """The single durable wake-up time of a partition. No row means no alarm."""

    __tablename__ = "alarm_slot"  # type: ignore

    slot: int = Field(default=ALARM_SLOT_ID, primary_key=True)
    wake_at_ms: int = Field(sa_column=Column(BigInteger, nullable=False), description="Epoch milliseconds")
