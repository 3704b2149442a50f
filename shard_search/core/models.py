"""
Data models shared by shards, the coordinator and clients
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class Document(BaseModel):
    """A document held by a shard, read-only once loaded"""
    model_config = ConfigDict(frozen=True)

    title: str
    abstract: str = ""
    label: str = ""


class SearchHit(BaseModel):
    """A matching document as reported to clients"""
    model_config = ConfigDict(frozen=True)

    title: str
    abstract: str
    label: str
    shard: str


class ShardResponse(BaseModel):
    """Answer of a single shard to one query"""
    shard: str
    total: int = Field(ge=0)
    results: List[SearchHit] = Field(default_factory=list)


class AggregateResult(BaseModel):
    """Merged answer of every shard that responded in time"""
    total: int = 0
    results: List[SearchHit] = Field(default_factory=list)
    shards: Dict[str, str] = Field(default_factory=dict)


class ShardStatus(str, Enum):
    """Final state of one shard call"""
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass(frozen=True)
class ShardOutcome:
    """Result of one shard call captured as a value"""
    shard_id: str
    status: ShardStatus
    hits: List[SearchHit] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def contributed(self) -> bool:
        return self.status is ShardStatus.COMPLETED
