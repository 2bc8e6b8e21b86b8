from slidespec.models.slide_spec import SlideSpec
from slidespec.models.intent_plan import IntentPlan
from slidespec.models.requests import GenerationRequest, GenerationResponse

__all__ = ["SlideSpec", "IntentPlan", "GenerationRequest", "GenerationResponse"]
