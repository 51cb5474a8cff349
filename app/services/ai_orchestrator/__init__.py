"""
AI Orchestrator Module - LLM-backed UX research on analyzed sessions.

Turns a SemanticSession from the behavior engine into a researcher prompt
and validates the model's structured reply.
"""

from .insights import FrustrationPoint, SessionInsightGenerator, UXAnalysis
from .llm_client import LLMClient

__all__ = ["SessionInsightGenerator", "UXAnalysis", "FrustrationPoint", "LLMClient"]
