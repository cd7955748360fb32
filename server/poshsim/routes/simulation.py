"""POSH simulation API routes.

- Case generation (with cache/template fallback)
- Conclusion grading
- Conclusion form options
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from ..dependencies import get_generation_settings, get_orchestrator
from ..models.simulation import (
    CaseRecord,
    ConclusionOptions,
    GenerationSettings,
    GradeRequest,
    GradeResponse,
    SchemaVersion,
    SimulationResponse,
)
from ..services.grading import conclusion_options, grade_conclusion
from ..services.simulation_orchestrator import SimulationOrchestrator

router = APIRouter()


@router.post("", response_model=SimulationResponse)
async def create_simulation(
    generation_settings: GenerationSettings = Depends(get_generation_settings),
    orchestrator: SimulationOrchestrator = Depends(get_orchestrator),
):
    """Generate a new case file. Always returns a case; never a 5xx."""
    result = await orchestrator.generate(generation_settings)
    return SimulationResponse(simulation_text=result.record.to_json(), source=result.source)


@router.post("/grade", response_model=GradeResponse)
async def grade_simulation(request: GradeRequest):
    """Grade a conclusion against the case the trainee was shown."""
    try:
        record = CaseRecord.model_validate(request.case)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid case payload ({exc.error_count()} errors)")
    return grade_conclusion(request.conclusion, record)


@router.get("/options", response_model=ConclusionOptions)
async def get_conclusion_options(schema_version: SchemaVersion = "v1"):
    return conclusion_options(schema_version)
