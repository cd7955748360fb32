from .case_cache import CaseCache
from .case_generator import CaseGenerator, CaseGenerationError
from .simulation_orchestrator import SimulationOrchestrator, SimulationResult

__all__ = [
    "CaseCache",
    "CaseGenerator",
    "CaseGenerationError",
    "SimulationOrchestrator",
    "SimulationResult",
]
