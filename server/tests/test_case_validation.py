import json

from poshsim.models.simulation import CaseRecord
from poshsim.services.case_validation import (
    CASE_TEMPLATE,
    ListField,
    MapField,
    TextField,
    classify_field,
    is_valid,
    normalize_field,
    normalize_structured,
    parse_candidate,
    repair,
)


def _valid_candidate(**overrides):
    candidate = {
        "caseOverview": "A regional sales office in Pune received a formal complaint.",
        "complainantStatement": "I was repeatedly asked to stay late and made uncomfortable.",
        "respondentStatement": "I only asked the team to meet targets before quarter end.",
        "witnessStatements": "Witness 1 - Analyst:\nI saw them argue near the pantry.",
        "additionalEvidence": "Slack excerpt: 'let's discuss this offline, just us two'",
        "legalReferenceGuide": "Section 2(n) of the POSH Act defines sexual harassment.",
        "correctResponsibleParty": "Respondent",
        "correctMisconductType": "Sexual Harassment",
        "correctPrimaryMotivation": "Genuine Complaint",
        "analysis": "The evidence suggests a pattern of unwelcome conduct by the respondent.",
    }
    candidate.update(overrides)
    return candidate


# ===========================================
# is_valid
# ===========================================

def test_is_valid_accepts_complete_candidate():
    assert is_valid(_valid_candidate()) is True


def test_is_valid_rejects_non_dict():
    assert is_valid(None) is False
    assert is_valid("not a case") is False
    assert is_valid([_valid_candidate()]) is False


def test_is_valid_rejects_short_text_field():
    assert is_valid(_valid_candidate(caseOverview="short")) is False


def test_is_valid_rejects_missing_field():
    candidate = _valid_candidate()
    del candidate["analysis"]
    assert is_valid(candidate) is False


def test_is_valid_rejects_unknown_enum_value():
    assert is_valid(_valid_candidate(correctResponsibleParty="Manager")) is False
    assert is_valid(_valid_candidate(correctMisconductType="Bullying")) is False


def test_is_valid_normalizes_structured_witness_statements():
    witnesses = [{"name": "Priya", "statement": "I heard raised voices in the cabin."}]
    assert is_valid(_valid_candidate(witnessStatements=witnesses)) is True
    assert is_valid(_valid_candidate(witnessStatements=[])) is False
    assert is_valid(_valid_candidate(witnessStatements={})) is False


def test_is_valid_checks_motivation_against_schema_version():
    assert is_valid(_valid_candidate(correctPrimaryMotivation="Jealousy")) is False
    assert is_valid(
        _valid_candidate(correctPrimaryMotivation="Jealousy", schemaVersion="v2")
    ) is True
    assert is_valid(
        _valid_candidate(correctPrimaryMotivation="Genuine Complaint", schemaVersion="v2")
    ) is False
    assert is_valid(_valid_candidate(schemaVersion="v9")) is False


def test_template_is_valid():
    assert is_valid(CASE_TEMPLATE.to_payload()) is True


# ===========================================
# normalization
# ===========================================

def test_classify_field_tags_each_shape():
    assert classify_field("text") == TextField("text")
    assert classify_field([1]) == ListField([1])
    assert classify_field({"a": "b"}) == MapField({"a": "b"})
    assert classify_field(42) is None
    assert classify_field(None) is None


def test_normalize_witness_list_uses_placeholder_names():
    text = normalize_structured(
        [{"name": "A", "statement": "saw nothing unusual"}, {"statement": "confirmed timeline"}],
        "Witness",
    )
    assert text == "A:\nsaw nothing unusual\n\nWitness 2:\nconfirmed timeline"


def test_normalize_list_entry_without_statement_renders_json():
    entry = {"name": "Ravi", "role": "Security Guard"}
    text = normalize_field(ListField([entry]), "Witness")
    assert text == f"Ravi:\n{json.dumps(entry)}"


def test_normalize_list_of_plain_strings():
    text = normalize_field(ListField(["first account", "second account"]), "Witness")
    assert text == "Witness 1:\nfirst account\n\nWitness 2:\nsecond account"


def test_normalize_evidence_mapping():
    text = normalize_structured(
        {"Email": "Sent at 11pm asking to meet", "Access log": {"badge": "in at 10:58pm"}},
        "Evidence",
    )
    assert text == 'Email:\nSent at 11pm asking to meet\n\nAccess log:\n{"badge": "in at 10:58pm"}'


# ===========================================
# repair
# ===========================================

def test_repair_keeps_valid_enums_and_falls_back_for_short_text():
    repaired = repair({
        "caseOverview": "short",
        "correctResponsibleParty": "Respondent",
        "correctMisconductType": "Sexual Harassment",
        "correctPrimaryMotivation": "Genuine Complaint",
    })

    assert repaired.case_overview == CASE_TEMPLATE.case_overview
    assert repaired.complainant_statement == CASE_TEMPLATE.complainant_statement
    assert repaired.witness_statements == CASE_TEMPLATE.witness_statements
    assert repaired.analysis == CASE_TEMPLATE.analysis
    assert repaired.correct_responsible_party == "Respondent"
    assert repaired.correct_misconduct_type == "Sexual Harassment"
    assert repaired.correct_primary_motivation == "Genuine Complaint"
    assert is_valid(repaired.to_payload())


def test_repair_normalizes_structured_witness_statements():
    repaired = repair(_valid_candidate(witnessStatements=[
        {"name": "A", "statement": "saw nothing unusual"},
        {"statement": "confirmed timeline"},
    ]))
    assert repaired.witness_statements == "A:\nsaw nothing unusual\n\nWitness 2:\nconfirmed timeline"


def test_repair_replaces_invalid_enums_with_template_defaults():
    repaired = repair(_valid_candidate(
        correctResponsibleParty="HR",
        correctMisconductType="Bullying",
        correctPrimaryMotivation="Boredom",
    ))
    assert repaired.correct_responsible_party == CASE_TEMPLATE.correct_responsible_party
    assert repaired.correct_misconduct_type == CASE_TEMPLATE.correct_misconduct_type
    assert repaired.correct_primary_motivation == CASE_TEMPLATE.correct_primary_motivation
    assert repaired.case_overview == _valid_candidate()["caseOverview"]


def test_repair_keeps_v2_motivation_when_version_declared():
    repaired = repair(_valid_candidate(correctPrimaryMotivation="Power preservation", schemaVersion="v2"))
    assert repaired.schema_version == "v2"
    assert repaired.correct_primary_motivation == "Power preservation"


def test_repair_does_not_widen_motivation_set():
    repaired = repair(_valid_candidate(correctPrimaryMotivation="Jealousy"))
    assert repaired.schema_version == "v1"
    assert repaired.correct_primary_motivation == "Genuine Complaint"


def test_non_string_schema_version_is_rejected_and_repaired():
    for version in (["v1"], [], {"v": 2}, 2, None):
        candidate = _valid_candidate(schemaVersion=version)

        assert is_valid(candidate) is False
        repaired = repair(candidate)
        assert repaired.schema_version == "v1"
        assert repaired.correct_primary_motivation == "Genuine Complaint"
        assert repaired.case_overview == candidate["caseOverview"]


def test_repair_handles_garbage_input():
    for candidate in (None, "text", 42, [], {}, {"caseOverview": 123, "witnessStatements": 7}):
        repaired = repair(candidate)
        assert isinstance(repaired, CaseRecord)
        assert is_valid(repaired.to_payload())


def test_repair_result_is_always_valid():
    candidates = [
        {},
        _valid_candidate(),
        _valid_candidate(respondentStatement=None, correctMisconductType="Unknown"),
        _valid_candidate(
            witnessStatements={"Anita (HR)": "She seemed distressed after the meeting."},
            additionalEvidence={"Email": "Please come to my cabin alone after 7pm."},
        ),
    ]
    for candidate in candidates:
        assert is_valid(repair(candidate).to_payload())


def test_repair_is_idempotent():
    candidates = [
        {},
        {"caseOverview": "short", "correctPrimaryMotivation": "Misunderstanding"},
        _valid_candidate(witnessStatements=[{"statement": "confirmed the timeline of events"}]),
        _valid_candidate(correctPrimaryMotivation="Retaliation", schemaVersion="v2"),
    ]
    for candidate in candidates:
        once = repair(candidate)
        assert repair(once.to_payload()) == once


# ===========================================
# parse_candidate
# ===========================================

def test_parse_candidate_plain_json():
    payload, extracted = parse_candidate(json.dumps({"caseOverview": "x"}))
    assert payload == {"caseOverview": "x"}
    assert extracted is False


def test_parse_candidate_strips_code_fences():
    payload, extracted = parse_candidate('```json\n{"analysis": "y"}\n```')
    assert payload == {"analysis": "y"}
    assert extracted is False


def test_parse_candidate_extracts_embedded_object():
    payload, extracted = parse_candidate('Here is your case:\n{"analysis": "y"}\nWHAT WOULD YOU LIKE TO REVIEW NEXT?')
    assert payload == {"analysis": "y"}
    assert extracted is True


def test_parse_candidate_returns_none_for_prose():
    assert parse_candidate("CASE FILE: no json here") == (None, False)
    assert parse_candidate("{not: valid json}") == (None, False)
