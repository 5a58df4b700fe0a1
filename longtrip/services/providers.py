"""
Collaborator interfaces for chunked generation.

The orchestrator talks to the AI model, the prompt text and the response
format only through these base classes, so any of them can be swapped out
(or faked in tests) without touching the generation flow.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from longtrip.models.chunk_models import Chunk, GenerationContext
from longtrip.models.itinerary_models import DayItinerary
from longtrip.models.trip_models import Trip
from longtrip.services.fallback_generator import FallbackGenerator


class ProviderResponse(BaseModel):
    content: Any
    tokens_used: int = 0


class AIProvider(ABC):
    """Structured-output model access"""

    @abstractmethod
    async def call_structured(
        self,
        model: str,
        prompt: str,
        schema: Optional[Dict[str, Any]],
        options: Optional[Dict[str, Any]] = None
    ) -> ProviderResponse:
        """
        Generate structured content for a prompt.

        Args:
            model: model alias, "fast" or "high-capacity"
            prompt: full prompt text
            schema: JSON schema the response should follow
            options: generation options such as temperature and max_tokens

        Raises:
            ProviderError: on any failure to produce content
        """


class PromptBuilder(ABC):

    @abstractmethod
    def build_chunked_prompt(self, chunk_trip: Trip, chunk: Chunk, context: GenerationContext) -> str:
        """Prompt text for one chunk, including carried-over context"""

    @abstractmethod
    def response_schema(self, chunk: Chunk) -> Dict[str, Any]:
        """JSON schema the provider response must follow for this chunk"""


class ResponseParser(ABC):

    @abstractmethod
    def parse_chunk_response(self, content: Any, chunk_trip: Trip, chunk: Chunk) -> List[DayItinerary]:
        """Validate provider output and normalize it into days. Raises ResponseParseError."""


class AIServices:
    """Bundle of the collaborators injected into the orchestrator"""

    def __init__(
        self,
        provider: AIProvider,
        prompt_builder: PromptBuilder,
        response_parser: ResponseParser,
        fallback_generator: Optional[FallbackGenerator] = None
    ):
        checks = [
            ("provider", provider, AIProvider),
            ("prompt_builder", prompt_builder, PromptBuilder),
            ("response_parser", response_parser, ResponseParser),
        ]
        if fallback_generator is not None:
            checks.append(("fallback_generator", fallback_generator, FallbackGenerator))

        for name, value, expected in checks:
            if not isinstance(value, expected):
                raise TypeError(
                    f"{name} must be a {expected.__name__}, got {type(value).__name__}"
                )

        self.provider = provider
        self.prompt_builder = prompt_builder
        self.response_parser = response_parser
        self.fallback_generator = fallback_generator or FallbackGenerator()

    def describe(self) -> Dict[str, str]:
        return {
            "provider": type(self.provider).__name__,
            "prompt_builder": type(self.prompt_builder).__name__,
            "response_parser": type(self.response_parser).__name__,
            "fallback_generator": type(self.fallback_generator).__name__,
        }
