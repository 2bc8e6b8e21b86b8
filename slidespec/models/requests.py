from datetime import datetime, timezone
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field

from slidespec.models.slide_spec import SlideSpec


class GenerationRequest(BaseModel):
    prompt: str
    requestId: str
    userId: Optional[str] = None
    # Free-form caller context, e.g. a client address used for rate limiting
    context: Optional[Dict[str, Any]] = None

    @property
    def client_key(self) -> str:
        if self.userId:
            return self.userId
        if self.context and self.context.get("clientIp"):
            return str(self.context["clientIp"])
        return "anonymous"


class GenerationResponse(BaseModel):
    spec: SlideSpec
    requestId: str
    processingTime: int = Field(description="Wall-clock milliseconds")
    model: str
    tokensUsed: Optional[int] = None
    plannerTokens: Optional[int] = None
    generatorTokens: Optional[int] = None
    isFallback: bool = False
    warning: Optional[str] = None
    # Decorative background served from the shared cache, if any
    background: Optional[str] = None


def format_response(response: GenerationResponse) -> Dict[str, Any]:
    """Serialize a response for the transport layer, adding a timestamp."""
    body = response.model_dump(exclude_none=True)
    body["timestamp"] = datetime.now(timezone.utc).isoformat()
    return body
