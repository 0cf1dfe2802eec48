"""Request/response schemas for AI endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., max_length=5000)


class SummarizeRequest(BaseModel):
    messages: list[ChatMessage] = Field(..., min_length=1, max_length=200)
    max_length: int = Field(150, ge=20, le=1000)


class SummarizeResponse(BaseModel):
    summary: str


class SuggestionsRequest(BaseModel):
    messages: list[ChatMessage] = Field(..., min_length=1, max_length=200)
    context: str = Field("", max_length=1000)
    options: int = Field(3, ge=1, le=5)


class SuggestionsResponse(BaseModel):
    suggestions: list[str]


class InsightsRequest(BaseModel):
    timeframe: Literal["day", "week", "month"] = "week"


class Insight(BaseModel):
    title: str
    content: str


class InsightsResponse(BaseModel):
    insights: list[Insight]


class MatchAnalysisRequest(BaseModel):
    user_id: int = Field(..., ge=1)


class MatchAnalysisResponse(BaseModel):
    score: int = Field(..., ge=0, le=100)
    reasons: list[str]
