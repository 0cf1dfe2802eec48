"""AI router: /api/v1/ai/* endpoints.

These never fail because of the upstream model; the service substitutes
fallback text instead.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from stayx.ai.schemas import (
    Insight,
    InsightsRequest,
    InsightsResponse,
    MatchAnalysisRequest,
    MatchAnalysisResponse,
    SuggestionsRequest,
    SuggestionsResponse,
    SummarizeRequest,
    SummarizeResponse,
)
from stayx.ai.service import AIService
from stayx.auth.dependencies import get_current_user
from stayx.dependencies import get_ai_service, get_storage
from stayx.storage.base import Storage
from stayx.storage.schemas import ACCEPTED, User

router = APIRouter(prefix="/api/v1/ai", tags=["AI"])

_PROFILE_FIELDS = {"username", "display_name", "bio", "interests", "level"}
_RECENT_ACTIVITY_COUNT = 5


@router.post("/summarize", response_model=SummarizeResponse)
async def summarize(
    body: SummarizeRequest,
    _user: User = Depends(get_current_user),
    ai: AIService = Depends(get_ai_service),
) -> SummarizeResponse:
    messages = [m.model_dump() for m in body.messages]
    return SummarizeResponse(summary=await ai.summarize_thread(messages, body.max_length))


@router.post("/suggestions", response_model=SuggestionsResponse)
async def suggestions(
    body: SuggestionsRequest,
    _user: User = Depends(get_current_user),
    ai: AIService = Depends(get_ai_service),
) -> SuggestionsResponse:
    messages = [m.model_dump() for m in body.messages]
    return SuggestionsResponse(
        suggestions=await ai.suggest_responses(messages, body.context, body.options),
    )


@router.post("/insights", response_model=InsightsResponse)
async def insights(
    body: InsightsRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    ai: AIService = Depends(get_ai_service),
) -> InsightsResponse:
    """Insights about the caller's own activity on the platform."""
    connections = await storage.get_user_connections(user.id, ACCEPTED)
    messages = await storage.get_user_messages(user.id)
    activities = await storage.get_user_activities(user.id, _RECENT_ACTIVITY_COUNT)
    user_data = {
        "interests": user.interests,
        "recent_activity": [a.type for a in activities],
        "connections": len(connections),
        "message_count": len(messages),
    }
    result = await ai.generate_insights(user_data, body.timeframe)
    return InsightsResponse(insights=[Insight(**item) for item in result])


@router.post("/match-analysis", response_model=MatchAnalysisResponse)
async def match_analysis(
    body: MatchAnalysisRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    ai: AIService = Depends(get_ai_service),
) -> MatchAnalysisResponse:
    candidate = await storage.get_user(body.user_id)
    if candidate is None:
        raise HTTPException(status_code=404, detail="User not found")
    score, reasons = await ai.analyze_connection_match(
        user.model_dump(include=_PROFILE_FIELDS),
        candidate.model_dump(include=_PROFILE_FIELDS),
    )
    return MatchAnalysisResponse(score=score, reasons=reasons)
