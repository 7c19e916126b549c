from .actor import PartitionActor, PartitionState
from .delivery import DeliveryOutcome, DeliveryWorker
from .migrator import SchemaAction, SchemaMigrator, SchemaReport
from .router import PartitionRouter

__all__ = [
    "DeliveryOutcome",
    "DeliveryWorker",
    "PartitionActor",
    "PartitionRouter",
    "PartitionState",
    "SchemaAction",
    "SchemaMigrator",
    "SchemaReport",
]
