"""Agent review result data models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class CacheStatus(str, Enum):
    HIT = "hit"
    MISS = "miss"


class TokenUsage(BaseModel):
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


class AgentReviewResult(BaseModel):
    agent: str
    model: str
    text: str
    usage: Optional[TokenUsage] = None
    cache_status: Optional[CacheStatus] = None


class CacheEntry(BaseModel):
    timestamp: float
    result: AgentReviewResult
