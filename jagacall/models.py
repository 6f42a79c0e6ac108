# jagacall/models.py

"""
Request bodies, per-kind analysis requests and the normalized result.

Of the body fields only `transcript` is checked, by the orchestrator. `language`, `metadata` and `audioDuration` may be
null or any JSON value the client chooses to send.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from jagacall.analysis.schema import SCHEMAS, AnalysisKind
from jagacall.envelope import isoformat


# ---------------------------------------------------------
# HTTP bodies
# ---------------------------------------------------------
class CallDetectBody(BaseModel):
    transcript: Optional[str] = Field(None, description="Call transcript to analyze.")
    language: Optional[str] = "mixed"
    metadata: Optional[Dict[str, Any]] = None


class VoiceAnalyzeBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transcript: Optional[str] = Field(None, description="Voice transcript to analyze.")
    # echoed back as sent: seconds, "0:42", null
    audio_duration: Any = Field(None, alias="audioDuration")
    language: Optional[str] = "mixed"
    metadata: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------
# Analysis requests (one per inbound call)
# ---------------------------------------------------------
@dataclass(frozen=True)
class CallAnalysisRequest:
    content: str
    language: str = "mixed"
    metadata: Dict[str, Any] = field(default_factory=dict)

    kind = AnalysisKind.CALL


@dataclass(frozen=True)
class VoiceAnalysisRequest:
    content: str
    language: str = "mixed"
    metadata: Dict[str, Any] = field(default_factory=dict)
    audio_duration: Any = None

    kind = AnalysisKind.VOICE


@dataclass(frozen=True)
class FileAnalysisRequest:
    """`content` is either readable text from the file or a synthesized description."""

    content: str
    file_name: str
    file_type: str
    file_size: int
    storage_path: str
    content_is_text: bool = False
    language: str = "mixed"
    metadata: Dict[str, Any] = field(default_factory=dict)

    kind = AnalysisKind.FILE


# ---------------------------------------------------------
# Normalized result
# ---------------------------------------------------------
class AnalysisResult(BaseModel):
    kind: AnalysisKind
    risk_level: str
    category: str
    confidence_score: int = Field(..., ge=0, le=100)
    flags: Dict[str, List[str]]
    recommended_action: str
    analysis_model: str
    timestamp: datetime
    parsed: bool = True

    def to_payload(self) -> Dict[str, Any]:
        """Client-facing camelCase view, before request passthrough fields are merged."""
        schema = SCHEMAS[self.kind]
        payload: Dict[str, Any] = {
            "riskLevel": self.risk_level,
            schema.category_key: self.category,
            "confidenceScore": self.confidence_score,
        }
        for provider_field, client_field in schema.flag_fields:
            payload[client_field] = list(self.flags.get(provider_field, []))
        payload["recommendedAction"] = self.recommended_action
        payload["analysisModel"] = self.analysis_model
        payload["timestamp"] = isoformat(self.timestamp)
        return payload
