# jagacall/ai/result_parser.py

"""
Turns ILMU's raw reply into an `AnalysisResult`.

This is the only place provider-originated structure is trusted, and only
after each field has been checked. Nothing here raises for bad provider
output:

    try_parse(raw)                     -> dict | ParseFailure
    build_result(outcome, kind, model) -> AnalysisResult
    parse_result(raw, kind, model)     -> build_result(try_parse(raw), ...)

A reply that is not a JSON object becomes the fail-safe result
(riskLevel "suspicious", confidence 50, a single "Unable to parse AI
response" flag). A JSON object with some bad or missing fields keeps the
good ones and takes table defaults for the rest.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from jagacall.analysis.schema import (
    FIELD_DEFAULTS,
    SCHEMAS,
    UNPARSEABLE_FLAG,
    AnalysisKind,
    default_for,
)
from jagacall.envelope import utc_now
from jagacall.models import AnalysisResult

# ```json ... ``` wrapper some models add even when told not to
_FENCE_REGEX = re.compile(r"^```(?:json)?\s*([\s\S]*?)\s*```$", re.IGNORECASE)


@dataclass(frozen=True)
class ParseFailure:
    reason: str


def try_parse(raw: Optional[str]) -> Union[Dict[str, Any], ParseFailure]:
    text = (raw or "").strip()
    if not text:
        return ParseFailure("empty response")

    fenced = _FENCE_REGEX.match(text)
    if fenced:
        text = fenced.group(1)

    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as exc:
        return ParseFailure(f"invalid JSON: {exc}")

    if not isinstance(data, dict):
        return ParseFailure(f"expected a JSON object, got {type(data).__name__}")
    return data


def _merge_flags(values: List[Any]) -> List[str]:
    """Stringify, trim, drop empties and case-insensitive duplicates, keep order."""
    merged: List[str] = []
    seen = set()
    for value in values:
        if value is None or isinstance(value, (dict, list)):
            continue
        flag = str(value).strip()
        if not flag:
            continue
        key = flag.lower()
        if key in seen:
            continue
        seen.add(key)
        merged.append(flag)
    return merged


def _confidence(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%"))
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return int(max(0, min(100, round(value))))


def _normalize(kind: AnalysisKind, data: Dict[str, Any]) -> Dict[str, Any]:
    schema = SCHEMAS[kind]
    fields: Dict[str, Any] = {}

    risk = data.get("risk_level")
    fields["risk_level"] = (
        risk if isinstance(risk, str) and risk in schema.risk_levels
        else default_for(kind, "risk_level")
    )

    category = data.get(schema.category_field)
    fields[schema.category_field] = (
        category if isinstance(category, str) and category in schema.categories
        else default_for(kind, schema.category_field)
    )

    confidence = _confidence(data.get("confidence"))
    fields["confidence"] = confidence if confidence is not None else default_for(kind, "confidence")

    for provider_field, _ in schema.flag_fields:
        value = data.get(provider_field)
        fields[provider_field] = (
            _merge_flags(value) if isinstance(value, list)
            else default_for(kind, provider_field)
        )

    action = data.get("recommended_action")
    fields["recommended_action"] = (
        action.strip() if isinstance(action, str) and action.strip()
        else default_for(kind, "recommended_action")
    )
    return fields


def fallback_fields(kind: AnalysisKind) -> Dict[str, Any]:
    fields = {name: default_for(kind, name) for name in FIELD_DEFAULTS[kind]}
    fields[SCHEMAS[kind].primary_flag_field] = [UNPARSEABLE_FLAG]
    return fields


def build_result(
    outcome: Union[Dict[str, Any], ParseFailure], kind: AnalysisKind, model: str
) -> AnalysisResult:
    parsed = not isinstance(outcome, ParseFailure)
    fields = _normalize(kind, outcome) if parsed else fallback_fields(kind)

    schema = SCHEMAS[kind]
    return AnalysisResult(
        kind=kind,
        risk_level=fields["risk_level"],
        category=fields[schema.category_field],
        confidence_score=fields["confidence"],
        flags={name: fields[name] for name, _ in schema.flag_fields},
        recommended_action=fields["recommended_action"],
        analysis_model=model,
        timestamp=utc_now(),
        parsed=parsed,
    )


def parse_result(raw: Optional[str], kind: AnalysisKind, model: str) -> AnalysisResult:
    return build_result(try_parse(raw), kind, model)
