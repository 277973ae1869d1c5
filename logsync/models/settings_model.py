from pydantic import BaseModel, Field, model_validator
from typing import Literal, Union


class RPCConfig(BaseModel):
    """JSON-RPC endpoint configuration model."""
    url: str
    retry: int = 3
    request_time_out: int = 15


class Redis(BaseModel):
    """Redis configuration model."""
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Union[str, None] = None
    ssl: bool = False


class StorageConfig(BaseModel):
    """Key-value storage backend configuration."""
    backend: Literal["sqlite", "postgres", "redis", "memory"] = "sqlite"
    sqlite_path: Union[str, None] = None
    postgres_dsn: Union[str, None] = None
    redis: Union[Redis, None] = None

    @model_validator(mode="after")
    def check_backend_settings(self):
        if self.backend == "sqlite" and not self.sqlite_path:
            raise ValueError("sqlite_path is required for the sqlite backend")
        if self.backend == "postgres" and not self.postgres_dsn:
            raise ValueError("postgres_dsn is required for the postgres backend")
        if self.backend == "redis" and self.redis is None:
            raise ValueError("redis settings are required for the redis backend")
        return self


class Logs(BaseModel):
    """Logging configuration model."""
    debug_mode: bool = False
    write_to_files: bool = True
    level: str = "INFO"


class SyncConfig(BaseModel):
    """Log sync tuning."""
    initial_batch_size: int = Field(50000, ge=1)
    min_batch_size: int = Field(100, ge=1)
    max_block_span: int = Field(100000, ge=1)
    poll_interval: float = Field(15.0, ge=0)


class Settings(BaseModel):
    """Main settings configuration model."""
    namespace: str
    rpc: RPCConfig
    storage: StorageConfig
    logs: Logs = Logs()
    sync: SyncConfig = SyncConfig()
