from .simulation import (
    CaseRecord,
    CacheEntry,
    CacheFile,
    ConclusionData,
    ConclusionOptions,
    FieldGrade,
    GenerationSettings,
    GradeRequest,
    GradeResponse,
    SimulationResponse,
    CaseSource,
    MisconductType,
    ResponsibleParty,
    SchemaVersion,
)
