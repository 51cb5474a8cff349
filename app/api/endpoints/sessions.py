"""
Session analysis API endpoints.

Accepts raw rrweb event arrays, runs the behavior engine and optionally
asks the LLM for a structured UX readout of the session.
"""

from fastapi import APIRouter, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import logging
import os

from ...services.ai_orchestrator import SessionInsightGenerator, UXAnalysis
from ...services.behavior_engine import (
    NoMeaningfulInteractionsError,
    SessionAnalyzer,
    render_transcript,
)

logger = logging.getLogger(__name__)

MAX_EVENTS = int(os.getenv("SESSION_MAX_EVENTS", "50000"))

# Stateless analyzer, safe to share between requests
analyzer = SessionAnalyzer()

# Initialize insight generator (singleton); None when no LLM is configured
try:
    insight_generator: Optional[SessionInsightGenerator] = SessionInsightGenerator()
except ValueError as e:
    logger.warning(f"LLM insights disabled: {e}")
    insight_generator = None

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


# --- REQUEST/RESPONSE MODELS ---

class SessionEventsRequest(BaseModel):
    """A recorded session as a raw rrweb event array"""
    session_id: Optional[str] = Field(None, description="Caller's session identifier")
    events: List[Any] = Field(
        ...,
        description="Raw rrweb events; malformed entries are skipped",
        max_length=MAX_EVENTS,
    )


class SessionAnalysisResponse(BaseModel):
    """Semantic session plus its rendered transcript"""
    session_id: Optional[str] = None
    session: Dict[str, Any] = Field(..., description="Serialized SemanticSession")
    transcript: str = Field(..., description="One '[MM:SS] action: details flags' line per log")
    analyzed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SessionInsightsResponse(BaseModel):
    """LLM UX analysis of a session"""
    session_id: Optional[str] = None
    analysis: UXAnalysis
    session: Dict[str, Any] = Field(..., description="Serialized SemanticSession")
    analyzed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def _no_interactions(session_id: Optional[str], error: NoMeaningfulInteractionsError) -> HTTPException:
    logger.info(f"Session {session_id or '-'} rejected: {error}")
    return HTTPException(status_code=400, detail=str(error))


# --- ENDPOINTS ---

@router.post("/analyze", response_model=SessionAnalysisResponse)
def analyze_session(request: SessionEventsRequest):
    """
    Analyze a recorded session.

    Returns the semantic log, ~35 summary counters and six behavioral
    signals. Sessions without a single interaction are rejected with 400.
    """
    logger.info(f"Analyze request - Session: {request.session_id or '-'}, events: {len(request.events)}")

    try:
        session = analyzer.analyze_or_raise(request.events)
    except NoMeaningfulInteractionsError as e:
        raise _no_interactions(request.session_id, e)

    return SessionAnalysisResponse(
        session_id=request.session_id,
        session=session.to_dict(),
        transcript=render_transcript(session.logs),
    )


@router.post("/insights", response_model=SessionInsightsResponse)
async def session_insights(request: SessionEventsRequest):
    """
    Analyze a recorded session and ask the LLM for a UX research readout:
    intent, friction points with log timestamps, what went well and a
    1-10 rating.
    """
    if not insight_generator:
        raise HTTPException(
            status_code=503,
            detail="AI insight service is unavailable. Check LLM API configuration."
        )

    logger.info(f"Insights request - Session: {request.session_id or '-'}, events: {len(request.events)}")

    try:
        session = await run_in_threadpool(analyzer.analyze_or_raise, request.events)
    except NoMeaningfulInteractionsError as e:
        raise _no_interactions(request.session_id, e)

    try:
        analysis = await insight_generator.generate(session)
    except RuntimeError as e:
        logger.error(f"Insight generation failed for session {request.session_id or '-'}: {e}", exc_info=True)
        raise HTTPException(
            status_code=502,
            detail="Failed to generate session insights. Please try again."
        )

    return SessionInsightsResponse(
        session_id=request.session_id,
        analysis=analysis,
        session=session.to_dict(),
    )


@router.get("/health")
async def health_check():
    """Check if session analysis and LLM insights are operational"""
    status = {
        "status": "operational",
        "max_events": MAX_EVENTS,
    }
    if not insight_generator:
        status["insights"] = "unavailable"
    else:
        status["insights"] = "operational"
        status["model"] = insight_generator.llm.model
    return status
