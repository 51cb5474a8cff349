"""
Session Insight Generator - LLM-backed UX analysis of an analyzed session.

Takes a SemanticSession produced by the behavior engine, builds the
researcher prompt and validates the model's JSON reply into a UXAnalysis.
Stateless: each call is independent.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..behavior_engine.analyzer import ensure_meaningful
from ..behavior_engine.metrics import SemanticSession

from .llm_client import LLMClient
from .prompts import build_session_analysis_prompt

logger = logging.getLogger(__name__)


class FrustrationPoint(BaseModel):
    """A friction moment quoted from the transcript"""
    timestamp: str = Field(..., description="Exact log timestamp in [MM:SS] format")
    issue: str = Field(..., description="Specific description of what went wrong")


class UXAnalysis(BaseModel):
    """Structured UX research readout of one session"""
    summary: str = Field(..., description="2-3 sentence executive summary")
    user_intent: str = Field(..., description="What the user was trying to accomplish")
    tags: List[str] = Field(default_factory=list, description="3-5 evidence-based tags")
    went_well: List[str] = Field(default_factory=list)
    frustration_points: List[FrustrationPoint] = Field(default_factory=list)
    ux_rating: int = Field(..., ge=1, le=10, description="10 is perfect UX")
    description: str = Field("", description="Chronological narrative of the session")

    @field_validator("ux_rating", mode="before")
    @classmethod
    def _round_rating(cls, value):
        # Models sometimes answer 7.5 or "8"; keep the 1-10 scale
        if isinstance(value, str):
            value = value.strip()
            try:
                value = float(value)
            except ValueError:
                return value
        if isinstance(value, float):
            return min(10, max(1, round(value)))
        return value


class SessionInsightGenerator:
    """
    Orchestrates prompt construction, the LLM call and reply validation.

    Usage:
        generator = SessionInsightGenerator()
        analysis = await generator.generate(session)
    """

    def __init__(self, llm_client: Optional[LLMClient] = None):
        """
        Args:
            llm_client: Optional pre-configured LLMClient (creates default if None)
        """
        self.llm = llm_client or LLMClient()
        logger.info("SessionInsightGenerator initialized")

    async def generate(self, session: SemanticSession) -> UXAnalysis:
        """
        Ask the LLM for a UX analysis of one session.

        Raises:
            NoMeaningfulInteractionsError: The session has no log lines
            RuntimeError: The LLM call failed or its reply did not validate
        """
        ensure_meaningful(session)
        system_prompt, user_prompt = build_session_analysis_prompt(session)

        logger.info(
            f"Requesting UX analysis - {len(session.logs)} log lines, "
            f"duration {session.total_duration}"
        )
        reply = await self.llm.complete_json(system_prompt, user_prompt)

        try:
            analysis = UXAnalysis.model_validate(reply)
        except ValidationError as e:
            logger.error(f"LLM reply failed validation: {e}")
            raise RuntimeError("AI service returned an incomplete analysis")

        logger.info(
            f"UX analysis complete - rating {analysis.ux_rating}, "
            f"{len(analysis.frustration_points)} frustration points"
        )
        return analysis
