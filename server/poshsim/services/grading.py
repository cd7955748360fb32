"""Grades a trainee's conclusion against a case's answer key."""

from ..models.simulation import (
    MISCONDUCT_TYPES,
    PRIMARY_MOTIVATIONS,
    RESPONSIBLE_PARTIES,
    CaseRecord,
    ConclusionData,
    ConclusionOptions,
    FieldGrade,
    GradeResponse,
    SchemaVersion,
)


def grade_conclusion(conclusion: ConclusionData, record: CaseRecord) -> GradeResponse:
    """Compare each conclusion field with the matching ``correct*`` field."""
    pairs = (
        ("responsibleParty", conclusion.responsible_party, record.correct_responsible_party),
        ("misconductType", conclusion.misconduct_type, record.correct_misconduct_type),
        ("primaryMotivation", conclusion.primary_motivation, record.correct_primary_motivation),
    )
    results = [
        FieldGrade(field=name, submitted=submitted, correct=correct, passed=submitted == correct)
        for name, submitted, correct in pairs
    ]
    score = sum(1 for result in results if result.passed)
    return GradeResponse(
        results=results,
        score=score,
        total=len(results),
        passed=score == len(results),
        analysis=record.analysis,
    )


def conclusion_options(schema_version: SchemaVersion = "v1") -> ConclusionOptions:
    """Values the conclusion form offers for a given case schema version."""
    return ConclusionOptions(
        responsible_parties=list(RESPONSIBLE_PARTIES),
        misconduct_types=list(MISCONDUCT_TYPES),
        primary_motivations=list(PRIMARY_MOTIVATIONS[schema_version]),
        schema_version=schema_version,
    )
