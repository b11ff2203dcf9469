"""
Upstream generative API: request/response types and the HTTP client.
"""

from .gemini import GeminiClient
from .types import (
    MAX_SOURCES,
    Candidate,
    GenerateContentResponse,
    GroundingAttribution,
    SafetyRating,
    Source,
    UpstreamPayload,
    UpstreamResult,
)

__all__ = [
    "GeminiClient",
    "MAX_SOURCES",
    "Candidate",
    "GenerateContentResponse",
    "GroundingAttribution",
    "SafetyRating",
    "Source",
    "UpstreamPayload",
    "UpstreamResult",
]
