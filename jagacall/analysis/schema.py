# jagacall/analysis/schema.py

"""
Per-kind output contract.

Each analysis kind asks the provider for a JSON object with the same core
fields (risk_level, <category>, confidence, <flag lists>,
recommended_action) but its own category taxonomy and flag field names.
`FIELD_DEFAULTS` is the one place defaults live; the parser consults it for
a single missing field and for a completely unusable reply alike.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple

UNPARSEABLE_FLAG = "Unable to parse AI response"


class AnalysisKind(str, Enum):
    CALL = "call"
    FILE = "file"
    VOICE = "voice"


@dataclass(frozen=True)
class KindSchema:
    risk_levels: Tuple[str, ...]
    category_field: str
    category_key: str
    categories: Tuple[str, ...]
    # provider field name -> client field name, in output order
    flag_fields: Tuple[Tuple[str, str], ...]

    @property
    def primary_flag_field(self) -> str:
        return self.flag_fields[0][0]


SCHEMAS: Dict[AnalysisKind, KindSchema] = {
    AnalysisKind.CALL: KindSchema(
        risk_levels=("safe", "suspicious", "highRisk", "scam"),
        category_field="scam_type",
        category_key="scamType",
        categories=("none", "impersonation", "urgency", "financialRequest", "threat", "other"),
        flag_fields=(("red_flags", "redFlags"),),
    ),
    AnalysisKind.VOICE: KindSchema(
        risk_levels=("safe", "suspicious", "highRisk", "scam"),
        category_field="scam_type",
        category_key="scamType",
        categories=(
            "none",
            "impersonation",
            "urgency",
            "emotionalManipulation",
            "financialRequest",
            "threat",
            "other",
        ),
        flag_fields=(
            ("linguistic_red_flags", "linguisticRedFlags"),
            ("behavioral_red_flags", "behavioralRedFlags"),
        ),
    ),
    AnalysisKind.FILE: KindSchema(
        risk_levels=("safe", "suspicious", "highRisk", "malicious"),
        category_field="threat_type",
        category_key="threatType",
        categories=("none", "malware", "phishing", "suspicious", "vulnerability", "other"),
        flag_fields=(("indicators", "indicators"),),
    ),
}

_RECOMMENDED_ACTION = {
    AnalysisKind.CALL: "Please review manually",
    AnalysisKind.VOICE: "Please exercise caution",
    AnalysisKind.FILE: "Please scan with antivirus software",
}


def _defaults_for(kind: AnalysisKind) -> Dict[str, Any]:
    schema = SCHEMAS[kind]
    defaults: Dict[str, Any] = {
        "risk_level": "suspicious",
        schema.category_field: "other",
        "confidence": 50,
        "recommended_action": _RECOMMENDED_ACTION[kind],
    }
    for provider_field, _ in schema.flag_fields:
        defaults[provider_field] = []
    return defaults


FIELD_DEFAULTS: Dict[AnalysisKind, Dict[str, Any]] = {
    kind: _defaults_for(kind) for kind in AnalysisKind
}


def default_for(kind: AnalysisKind, field: str) -> Any:
    value = FIELD_DEFAULTS[kind][field]
    return list(value) if isinstance(value, list) else value
