# jagacall/ai/prompts.py

"""
Prompt construction for the ILMU chat-completions API.

Every system prompt carries three parts:
  1. who the model is,
  2. which indicators to look for (Malaysian scam patterns for calls and
     voice, malware / phishing signals for files),
  3. the exact JSON object the model must answer with.

The field names in the JSON schema are the ones `result_parser` reads back.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Union

from jagacall.analysis.schema import AnalysisKind
from jagacall.models import CallAnalysisRequest, FileAnalysisRequest, VoiceAnalysisRequest

AnalysisRequest = Union[CallAnalysisRequest, FileAnalysisRequest, VoiceAnalysisRequest]

# Keep newlines and tabs, drop every other control character.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


@dataclass(frozen=True)
class Prompt:
    system_prompt: str
    user_prompt: str

    def messages(self) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.user_prompt},
        ]


CALL_SYSTEM_MSG = """You are ILMU, an AI assistant from Malaysia specializing in call scam detection.

Analyze this call transcript for scam indicators focusing on Malaysian context:
- Authority impersonation (Bank Negara, PDRM, LHDN, JPJ, etc.)
- Urgency tactics (sekarang, segera, immediately)
- Financial requests (OTP, money transfer, payment)
- Threats (arrest, legal action, account suspension)

Provide risk assessment in JSON format:
{
  "risk_level": "safe|suspicious|highRisk|scam",
  "scam_type": "none|impersonation|urgency|financialRequest|threat|other",
  "confidence": 0-100,
  "red_flags": ["flag1", "flag2"],
  "recommended_action": "..."
}

Respond ONLY with the JSON object. Never include commentary outside the JSON."""


VOICE_SYSTEM_MSG = """You are ILMU, an AI assistant from Malaysia specializing in voice scam detection.

Analyze this voice transcript for scam indicators focusing on:
- Authority impersonation (bank, police, government agencies such as Bank Negara, PDRM, LHDN)
- Urgency tactics (sekarang, segera, immediately)
- Emotional manipulation (fear, guilt, panic about family members)
- Financial requests (OTP, money transfer, payment)
- Threats (arrest, legal action, account suspension)

Provide analysis in JSON format:
{
  "risk_level": "safe|suspicious|highRisk|scam",
  "scam_type": "none|impersonation|urgency|emotionalManipulation|financialRequest|threat|other",
  "confidence": 0-100,
  "linguistic_red_flags": ["flag1", "flag2"],
  "behavioral_red_flags": ["pattern1", "pattern2"],
  "recommended_action": "..."
}

Consider Malaysian context and common scam patterns in the region.
Respond ONLY with the JSON object. Never include commentary outside the JSON."""


FILE_SYSTEM_MSG = """You are ILMU, an AI assistant specializing in file security analysis.

Analyze this file for security threats and malicious indicators:
- Malware signatures and patterns
- Suspicious file metadata (name, type, size that do not match)
- Phishing indicators in document content
- Security vulnerabilities

Provide analysis in JSON format:
{
  "risk_level": "safe|suspicious|highRisk|malicious",
  "threat_type": "none|malware|phishing|suspicious|vulnerability|other",
  "confidence": 0-100,
  "indicators": ["indicator1", "indicator2"],
  "recommended_action": "..."
}

Respond ONLY with the JSON object. Never include commentary outside the JSON."""


def sanitize(text: str) -> str:
    return _CONTROL_CHARS.sub("", text or "").strip()


def describe_file(file_name: str, file_type: str, file_size: int) -> str:
    return f"File analysis: {file_name}, Type: {file_type}, Size: {file_size} bytes"


def build_prompt(kind: AnalysisKind, request: AnalysisRequest) -> Prompt:
    """Pure: turns a validated request into system + user prompts."""
    content = sanitize(request.content)

    if kind is AnalysisKind.CALL:
        system = f"{CALL_SYSTEM_MSG}\n\nLanguage: {request.language}"
        user = f'Call transcript analysis: "{content}"'
    elif kind is AnalysisKind.VOICE:
        system = f"{VOICE_SYSTEM_MSG}\n\nLanguage: {request.language}"
        user = f'Voice transcript analysis: "{content}"'
    elif kind is AnalysisKind.FILE:
        if not request.content_is_text:
            # binary uploads are described, never sent
            content = describe_file(request.file_name, request.file_type, request.file_size)
        system = f"{FILE_SYSTEM_MSG}\n\nFile Type: {request.file_type}"
        user = f'File security analysis: "{content}"'
    else:
        raise ValueError(f"Unsupported analysis kind: {kind!r}")

    return Prompt(system_prompt=system, user_prompt=user)
