"""
Types for the Gemini generateContent exchange.

The response types mirror only the fields the relay consumes. Every level of
the upstream JSON may be missing or of the wrong shape, so `from_dict`
constructors accept anything and fall back to empty values instead of
raising.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

MAX_SOURCES = 5


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _sequence(value: Any) -> Sequence[Any]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return value
    return ()


def _string(value: Any) -> str | None:
    return value if isinstance(value, str) else None


# =============================================================================
# Outbound
# =============================================================================


@dataclass(frozen=True)
class UpstreamPayload:
    """Request body for a single-turn, search-grounded generateContent call."""

    prompt: str
    system_instruction: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": self.prompt}]}],
            "tools": [{"google_search": {}}],
            "systemInstruction": {"parts": [{"text": self.system_instruction}]},
        }


# =============================================================================
# Inbound (from the upstream API)
# =============================================================================


@dataclass(frozen=True)
class Source:
    """A web citation returned to the caller."""

    uri: str
    title: str

    def to_dict(self) -> dict[str, str]:
        return {"uri": self.uri, "title": self.title}


@dataclass(frozen=True)
class GroundingAttribution:
    uri: str | None = None
    title: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> GroundingAttribution:
        web = _mapping(_mapping(data).get("web"))
        return cls(uri=_string(web.get("uri")), title=_string(web.get("title")))

    def to_source(self) -> Source | None:
        """A Source, or None when either field is missing or empty."""
        if not self.uri or not self.title:
            return None
        return Source(uri=self.uri, title=self.title)


@dataclass(frozen=True)
class SafetyRating:
    block_reason: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> SafetyRating:
        return cls(block_reason=_string(_mapping(data).get("blockReason")))


@dataclass(frozen=True)
class Candidate:
    """The parts of one generated answer the relay reads."""

    text: str | None = None
    attributions: tuple[GroundingAttribution, ...] = ()
    safety_ratings: tuple[SafetyRating, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> Candidate:
        data = _mapping(data)

        # Only the first part is read; later parts are ignored.
        parts = _sequence(_mapping(data.get("content")).get("parts"))
        text = _string(_mapping(parts[0]).get("text")) if parts else None

        grounding = _mapping(data.get("groundingMetadata"))
        attributions = tuple(
            GroundingAttribution.from_dict(item) for item in _sequence(grounding.get("groundingAttributions"))
        )
        safety_ratings = tuple(SafetyRating.from_dict(item) for item in _sequence(data.get("safetyRatings")))
        return cls(text=text, attributions=attributions, safety_ratings=safety_ratings)

    @property
    def has_text(self) -> bool:
        return bool(self.text)

    @property
    def block_reason(self) -> str | None:
        """blockReason of the first safety rating, if any."""
        if not self.safety_ratings:
            return None
        return self.safety_ratings[0].block_reason or None

    def sources(self, limit: int = MAX_SOURCES) -> list[Source]:
        """Complete attributions in upstream order, at most `limit` of them."""
        sources: list[Source] = []
        for attribution in self.attributions:
            if len(sources) >= limit:
                break
            source = attribution.to_source()
            if source is not None:
                sources.append(source)
        return sources


@dataclass(frozen=True)
class GenerateContentResponse:
    candidates: tuple[Candidate, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Any) -> GenerateContentResponse:
        return cls(candidates=tuple(Candidate.from_dict(c) for c in _sequence(_mapping(data).get("candidates"))))

    @property
    def first_candidate(self) -> Candidate | None:
        return self.candidates[0] if self.candidates else None


# =============================================================================
# Call outcome
# =============================================================================


@dataclass
class UpstreamResult:
    """
    Outcome of one generateContent call.

    Exactly one of two shapes:
    - a transport failure: `transport_error` is set, `status` and `body` are None
    - an HTTP exchange: `status` is the upstream status, `body` the decoded JSON
    """

    status: int | None = None
    body: Any = None
    transport_error: BaseException | None = None
    duration_ms: float | None = None

    @classmethod
    def failed(cls, error: BaseException, duration_ms: float | None = None) -> UpstreamResult:
        return cls(transport_error=error, duration_ms=duration_ms)

    @property
    def is_transport_failure(self) -> bool:
        return self.transport_error is not None

    @property
    def ok(self) -> bool:
        return not self.is_transport_failure and self.status is not None and 200 <= self.status < 300

    def parsed(self) -> GenerateContentResponse:
        return GenerateContentResponse.from_dict(self.body)


__all__ = [
    "MAX_SOURCES",
    "UpstreamPayload",
    "Source",
    "GroundingAttribution",
    "SafetyRating",
    "Candidate",
    "GenerateContentResponse",
    "UpstreamResult",
]
