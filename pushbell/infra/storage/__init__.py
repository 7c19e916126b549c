from .connection import (
    PartitionStorage,
    create_partition_engine,
    list_partition_keys,
    partition_path,
    validate_partition_key,
)

__all__ = [
    "PartitionStorage",
    "create_partition_engine",
    "list_partition_keys",
    "partition_path",
    "validate_partition_key",
]
