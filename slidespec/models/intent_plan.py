from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field


class IntentPlan(BaseModel):
    """Read-only hints extracted from the prompt before content generation.

    Consulted for prompt augmentation and palette inference; never copied into
    the slide specification.
    """
    model_config = ConfigDict(extra="ignore")

    intent: Literal["explanatory", "action", "analytical"] = Field(
        description="What the slide is for: explain, drive an action, or analyze data"
    )
    audience: str = Field(max_length=100, description="Who will see the slide")
    tone: Literal["formal", "conversational", "technical", "executive"]
    slidePattern: Literal[
        "overview", "2x2", "timeline", "bar-chart", "compare-contrast", "process-flow", "hero"
    ]
    visualPlan: Literal["chart", "table", "hero", "illustration", "minimal"] = "minimal"
    brandHints: List[str] = Field(default_factory=list, max_length=5, description="Company or brand names")
    dataHints: List[str] = Field(default_factory=list, max_length=10, description="Numbers, metrics or series mentioned")
