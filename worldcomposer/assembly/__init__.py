"""World assembly: stage functions and the composition pipeline."""

from .pipeline import LayeredCompositionPipeline, MalformedInputError, diversity_index
from .stages import STAGES, CompositionState, StageContext

__all__ = [
    "LayeredCompositionPipeline",
    "MalformedInputError",
    "diversity_index",
    "STAGES",
    "CompositionState",
    "StageContext",
]
