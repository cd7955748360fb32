"""Case record validation and repair.

The generator returns loosely structured JSON. ``is_valid`` decides whether a
candidate can be shown as-is and ``repair`` coerces anything into a complete
``CaseRecord``, starting from ``CASE_TEMPLATE`` and keeping every candidate
value that is usable.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

from ..models.simulation import (
    DEFAULT_SCHEMA_VERSION,
    MIN_TEXT_LENGTH,
    MISCONDUCT_TYPES,
    PRIMARY_MOTIVATIONS,
    RESPONSIBLE_PARTIES,
    CaseRecord,
)


CASE_TEMPLATE = CaseRecord(
    case_overview=(
        "Workplace Incident Report\n\n"
        "This is a placeholder for a new case. The AI generator was unable to produce a complete case."
    ),
    complainant_statement="The complainant statement could not be generated.",
    respondent_statement="The respondent statement could not be generated.",
    witness_statements=(
        "Witness 1 - HR Manager:\n"
        "I witnessed the incident and can confirm that tensions have been high between the two parties. "
        "The complainant appeared visibly upset after their interaction.\n\n"
        "Witness 2 - Team Lead:\n"
        "I have observed multiple interactions between the parties and noticed a pattern of uncomfortable exchanges."
    ),
    additional_evidence=(
        "Email Evidence: Email exchanges showing communications between parties.\n\n"
        "Company Policy: Relevant workplace policy documents."
    ),
    legal_reference_guide=(
        "POSH Act Legal Reference Guide:\n\n"
        "1. Definition of Sexual Harassment (Section 2(n) of the POSH Act):\n"
        "Sexual harassment includes unwelcome sexually determined behavior such as physical contact, "
        "demand or request for sexual favors, sexually colored remarks, showing pornography, or any other "
        "unwelcome physical, verbal, or non-verbal conduct of a sexual nature."
    ),
    correct_responsible_party="Respondent",
    correct_misconduct_type="Sexual Harassment",
    correct_primary_motivation="Genuine Complaint",
    analysis="No detailed analysis is available for this case.",
    schema_version=DEFAULT_SCHEMA_VERSION,
)

# Plain narrative fields (wire name -> model attribute)
TEXT_FIELDS = {
    "caseOverview": "case_overview",
    "complainantStatement": "complainant_statement",
    "respondentStatement": "respondent_statement",
    "legalReferenceGuide": "legal_reference_guide",
    "analysis": "analysis",
}

# Fields the generator may return as a list or mapping (wire name -> (attribute, role))
STRUCTURED_FIELDS = {
    "witnessStatements": ("witness_statements", "Witness"),
    "additionalEvidence": ("additional_evidence", "Evidence"),
}

_NAME_KEYS = ("name", "title", "witness")
_BODY_KEYS = ("statement", "content", "text")


# ===========================================
# Polymorphic field variants
# ===========================================

@dataclass(frozen=True)
class TextField:
    text: str


@dataclass(frozen=True)
class ListField:
    items: list[Any]


@dataclass(frozen=True)
class MapField:
    entries: dict[str, Any]


FieldValue = Union[TextField, ListField, MapField]


def classify_field(raw_value: Any) -> Optional[FieldValue]:
    """Tag a raw JSON value; ``None`` when it cannot carry text."""
    if isinstance(raw_value, str):
        return TextField(raw_value)
    if isinstance(raw_value, list):
        return ListField(raw_value)
    if isinstance(raw_value, dict):
        return MapField(raw_value)
    return None


def _render(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _first_text(entry: dict[str, Any], keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        value = entry.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def _normalize_list_entry(entry: Any, role: str, position: int) -> str:
    placeholder = f"{role} {position}"
    if isinstance(entry, dict):
        name = _first_text(entry, _NAME_KEYS) or placeholder
        body = _first_text(entry, _BODY_KEYS) or _render(entry)
        return f"{name}:\n{body}"
    return f"{placeholder}:\n{_render(entry)}"


def normalize_field(value: FieldValue, role: str) -> str:
    """Render a tagged field value as one display string."""
    match value:
        case TextField(text=text):
            return text
        case ListField(items=items):
            return "\n\n".join(
                _normalize_list_entry(entry, role, idx + 1) for idx, entry in enumerate(items)
            )
        case MapField(entries=entries):
            return "\n\n".join(f"{name}:\n{_render(body)}" for name, body in entries.items())
    raise TypeError(f"Unsupported field value: {value!r}")


def normalize_structured(raw_value: Any, role: str) -> Optional[str]:
    tagged = classify_field(raw_value)
    if tagged is None:
        return None
    return normalize_field(tagged, role)


def _has_min_length(text: Optional[str]) -> bool:
    return isinstance(text, str) and len(text) >= MIN_TEXT_LENGTH


def _schema_version(candidate: dict) -> Optional[str]:
    """Declared schema version, or None when it is not a known version string."""
    version = candidate.get("schemaVersion", DEFAULT_SCHEMA_VERSION)
    if isinstance(version, str) and version in PRIMARY_MOTIVATIONS:
        return version
    return None


# ===========================================
# Validation
# ===========================================

def is_valid(candidate: Any) -> bool:
    """Return True when a raw candidate can be used without repair.

    Structured witness/evidence values are normalized before the length check,
    the same way ``repair`` would render them.
    """
    if not isinstance(candidate, dict):
        return False

    for wire_name in TEXT_FIELDS:
        if not _has_min_length(candidate.get(wire_name)):
            return False

    for wire_name, (_, role) in STRUCTURED_FIELDS.items():
        if not _has_min_length(normalize_structured(candidate.get(wire_name), role)):
            return False

    version = _schema_version(candidate)
    if version is None:
        return False

    if candidate.get("correctResponsibleParty") not in RESPONSIBLE_PARTIES:
        return False
    if candidate.get("correctMisconductType") not in MISCONDUCT_TYPES:
        return False
    if candidate.get("correctPrimaryMotivation") not in PRIMARY_MOTIVATIONS[version]:
        return False

    return True


# ===========================================
# Repair
# ===========================================

def repair(candidate: Any) -> CaseRecord:
    """Coerce any candidate into a complete case record. Never raises."""
    repaired = CASE_TEMPLATE.to_payload()
    if not isinstance(candidate, dict):
        return CaseRecord.model_validate(repaired)

    for wire_name in TEXT_FIELDS:
        value = candidate.get(wire_name)
        if _has_min_length(value):
            repaired[wire_name] = value

    for wire_name, (_, role) in STRUCTURED_FIELDS.items():
        text = normalize_structured(candidate.get(wire_name), role)
        if _has_min_length(text):
            repaired[wire_name] = text

    if candidate.get("correctResponsibleParty") in RESPONSIBLE_PARTIES:
        repaired["correctResponsibleParty"] = candidate["correctResponsibleParty"]
    if candidate.get("correctMisconductType") in MISCONDUCT_TYPES:
        repaired["correctMisconductType"] = candidate["correctMisconductType"]

    version = _schema_version(candidate)
    motivation = candidate.get("correctPrimaryMotivation")
    if version is not None and motivation in PRIMARY_MOTIVATIONS[version]:
        repaired["schemaVersion"] = version
        repaired["correctPrimaryMotivation"] = motivation

    return CaseRecord.model_validate(repaired)


# ===========================================
# Parsing generator output
# ===========================================

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_candidate(text: str) -> tuple[Optional[dict[str, Any]], bool]:
    """Parse generator text into a dict.

    Returns ``(payload, extracted)`` where ``extracted`` is True when the
    object had to be cut out of surrounding prose. ``(None, False)`` when
    nothing parseable was found.
    """
    cleaned = _strip_code_fences(text)
    try:
        parsed = json.loads(cleaned)
        if isinstance(parsed, dict):
            return parsed, False
    except json.JSONDecodeError:
        pass

    match = _JSON_OBJECT_RE.search(cleaned)
    if match:
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None, False
        if isinstance(parsed, dict):
            return parsed, True
    return None, False
