"""
Interfaces for the collaborators injected into the pipeline.

Small, focused contracts so the orchestrator can be tested with in-memory fakes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)

# (theme, aspectRatio, primary, accent)
BackgroundKey = Tuple[str, str, str, str]


@dataclass
class StructuredResult:
    """A schema-validated document plus call metadata"""
    data: BaseModel
    model: str
    mode: str
    tokens_used: Optional[int] = None
    attempts: int = 1


class IStructuredOutputClient(ABC):
    """Calls the generative service and returns a validated document"""

    @abstractmethod
    async def call_with_usage(
        self,
        prompt: str,
        schema: Type[T],
        temperature: float,
        request_id: str,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> StructuredResult:
        pass

    async def call(self, prompt: str, schema: Type[T], temperature: float, request_id: str, **kwargs) -> T:
        result = await self.call_with_usage(prompt, schema, temperature, request_id, **kwargs)
        return result.data


class IRateLimiter(ABC):
    """Per-client request allowance"""

    @abstractmethod
    async def check(self, client_key: str) -> Tuple[bool, float]:
        """Record a request; return (allowed, seconds until the window resets)"""
        pass

    @abstractmethod
    def reset(self, client_key: Optional[str] = None) -> None:
        pass


class IBackgroundCache(ABC):
    """Read path into the decorative-background collaborator's cache"""

    @abstractmethod
    def get(self, key: BackgroundKey) -> Optional[str]:
        pass

    @abstractmethod
    def put(self, key: BackgroundKey, value: str) -> None:
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass
