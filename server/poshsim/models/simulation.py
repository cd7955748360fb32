from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# Type aliases
ResponsibleParty = Literal["Respondent", "Complainant", "Both Parties", "Neither Party"]
MisconductType = Literal["Sexual Harassment", "Discrimination", "Retaliation", "No Misconduct"]
SchemaVersion = Literal["v1", "v2"]
CaseSource = Literal["generated", "repaired", "cache", "template"]

RESPONSIBLE_PARTIES: tuple[str, ...] = ("Respondent", "Complainant", "Both Parties", "Neither Party")
MISCONDUCT_TYPES: tuple[str, ...] = ("Sexual Harassment", "Discrimination", "Retaliation", "No Misconduct")

# Motivation values registered per case schema version.
PRIMARY_MOTIVATIONS: dict[str, tuple[str, ...]] = {
    "v1": ("Genuine Complaint", "Personal Vendetta", "Career Advancement", "Misunderstanding"),
    "v2": ("Power preservation", "Retaliation", "Jealousy", "Gender-based prejudice"),
}
DEFAULT_SCHEMA_VERSION: SchemaVersion = "v1"

MIN_TEXT_LENGTH = 20
CACHE_CAPACITY = 10


class CaseRecord(BaseModel):
    """A complete case file: narrative sections plus the answer key."""

    model_config = ConfigDict(populate_by_name=True)

    case_overview: str = Field(alias="caseOverview")
    complainant_statement: str = Field(alias="complainantStatement")
    respondent_statement: str = Field(alias="respondentStatement")
    witness_statements: str = Field(alias="witnessStatements")
    additional_evidence: str = Field(alias="additionalEvidence")
    legal_reference_guide: str = Field(alias="legalReferenceGuide")
    correct_responsible_party: ResponsibleParty = Field(alias="correctResponsibleParty")
    correct_misconduct_type: MisconductType = Field(alias="correctMisconductType")
    correct_primary_motivation: str = Field(alias="correctPrimaryMotivation")
    analysis: str
    schema_version: SchemaVersion = Field(default=DEFAULT_SCHEMA_VERSION, alias="schemaVersion")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class CacheEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data: CaseRecord
    added_at: str = Field(alias="addedAt")


class CacheFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cases: list[CacheEntry] = []
    last_updated: str = Field(alias="lastUpdated")


class ConclusionData(BaseModel):
    """Trainee's conclusion submitted from the conclusion form."""

    model_config = ConfigDict(populate_by_name=True)

    responsible_party: ResponsibleParty = Field(alias="responsibleParty")
    misconduct_type: MisconductType = Field(alias="misconductType")
    primary_motivation: str = Field(alias="primaryMotivation")


class GenerationSettings(BaseModel):
    """Per-request generator configuration."""

    api_key: Optional[str] = None
    model: str = "gemini-2.5-flash"
    temperature: float = 0.8
    max_tokens: int = 4000


class SimulationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    simulation_text: str = Field(alias="simulationText")
    source: CaseSource


class GradeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conclusion: ConclusionData
    case: dict


class FieldGrade(BaseModel):
    field: str
    submitted: str
    correct: str
    passed: bool


class GradeResponse(BaseModel):
    results: list[FieldGrade]
    score: int
    total: int
    passed: bool
    analysis: str


class ConclusionOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    responsible_parties: list[str] = Field(alias="responsibleParties")
    misconduct_types: list[str] = Field(alias="misconductTypes")
    primary_motivations: list[str] = Field(alias="primaryMotivations")
    schema_version: SchemaVersion = Field(alias="schemaVersion")
