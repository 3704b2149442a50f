"""
Configuration management for the sharded search system
"""
import json
import os
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class ShardAddress(BaseModel):
    """Where the coordinator can reach a shard"""
    shard_id: str
    host: str = "localhost"
    port: int = Field(ge=1, le=65535)

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @classmethod
    def parse(cls, value: str) -> "ShardAddress":
        """
        Parse a shard address written as 'id@host:port' or 'host:port'

        Args:
            value: Address string

        Returns:
            ShardAddress instance
        """
        shard_id = None
        if "@" in value:
            shard_id, value = value.split("@", 1)

        host, sep, port = value.rpartition(":")
        if not sep or not host or not port.isdigit():
            raise ValueError(f"Invalid shard address: '{value}' (expected host:port)")

        return cls(shard_id=shard_id or f"{host}:{port}", host=host, port=int(port))


def default_shards() -> List[ShardAddress]:
    return [
        ShardAddress(shard_id="shard-b", port=8081),
        ShardAddress(shard_id="shard-c", port=8082),
    ]


class ShardConfig(BaseModel):
    """Configuration for a shard worker"""
    shard_id: str
    host: str = "localhost"
    port: int = Field(ge=1024, le=65535)
    data_file: str
    algorithm: str = "boyer-moore"

    def address(self) -> ShardAddress:
        return ShardAddress(shard_id=self.shard_id, host=self.host, port=self.port)


class CoordinatorConfig(BaseModel):
    """Configuration for the search coordinator"""
    coordinator_id: str = "coordinator"
    host: str = "localhost"
    port: int = Field(default=8080, ge=1024, le=65535)
    shards: List[ShardAddress] = Field(default_factory=default_shards)
    search_timeout: float = Field(default=30.0, gt=0)  # seconds, per shard call

    @field_validator("shards")
    @classmethod
    def unique_shard_ids(cls, shards: List[ShardAddress]) -> List[ShardAddress]:
        ids = [shard.shard_id for shard in shards]
        if len(ids) != len(set(ids)):
            raise ValueError("shard ids must be unique")
        return shards


class SearchConfig(BaseModel):
    """Configuration for search results"""
    snippet_length: int = Field(default=200, gt=0)
    ellipsis: str = "..."


class LoggingConfig(BaseModel):
    """Configuration for logging"""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Config(BaseModel):
    """Main configuration class"""
    shard: Optional[ShardConfig] = None
    coordinator: Optional[CoordinatorConfig] = None
    search: SearchConfig = Field(default_factory=SearchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables"""
        mode = os.getenv("NODE_MODE")

        shard = None
        if mode == "shard":
            shard = ShardConfig(
                shard_id=os.getenv("SHARD_ID", "shard-1"),
                host=os.getenv("SHARD_HOST", "localhost"),
                port=int(os.getenv("SHARD_PORT", "8081")),
                data_file=os.getenv("SHARD_DATA_FILE", "data.json"),
            )

        coordinator = None
        if mode == "coordinator":
            options = {
                "host": os.getenv("COORDINATOR_HOST", "localhost"),
                "port": int(os.getenv("COORDINATOR_PORT", "8080")),
                "search_timeout": float(os.getenv("SEARCH_TIMEOUT", "30")),
            }
            if os.getenv("SHARD_ADDRESSES"):
                options["shards"] = [
                    ShardAddress.parse(item.strip())
                    for item in os.getenv("SHARD_ADDRESSES").split(",")
                    if item.strip()
                ]
            coordinator = CoordinatorConfig(**options)

        return cls(
            shard=shard,
            coordinator=coordinator,
            logging=LoggingConfig(level=os.getenv("LOG_LEVEL", "INFO")),
        )

    @classmethod
    def load_from_file(cls, file_path: str) -> "Config":
        """Load configuration from JSON file"""
        with open(file_path, 'r') as f:
            data = json.load(f)
        return cls(**data)

    def save_to_file(self, file_path: str) -> None:
        """Save configuration to JSON file"""
        with open(file_path, 'w') as f:
            json.dump(self.model_dump(), f, indent=2)
