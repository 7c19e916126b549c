from pydantic import BaseModel, Field


class StorageConfig(BaseModel):
    """Per-partition SQLite storage.

    Every partition key gets its own database file under ``DataDir``.
    ``InMemory`` keeps each partition in a private in-memory database, which
    is lost on restart (tests only).
    """

    DataDir: str = Field(default="data/partitions", description="Directory holding one SQLite file per partition")
    InMemory: bool = Field(default=False, description="Use in-memory databases instead of files")
    Echo: bool = Field(default=False, description="Log every SQL statement")
