import vertexai
from vertexai.generative_models import GenerationConfig, GenerativeModel
from google.api_core import exceptions as google_exceptions
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
import logging
from typing import Any, Dict, Optional

from longtrip.services.providers import AIProvider, ProviderResponse
from longtrip.utils.config import settings
from longtrip.utils.errors import ProviderError, TransientProviderError

# Errors worth another attempt; everything else from the API fails the call immediately
TRANSIENT_ERRORS = (
    google_exceptions.TooManyRequests,
    google_exceptions.ResourceExhausted,
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
    google_exceptions.InternalServerError,
)


class VertexAIService(AIProvider):
    """AI provider backed by Gemini models on Vertex AI"""

    def __init__(
        self,
        project_id: str,
        location: str = "us-central1",
        model_names: Optional[Dict[str, str]] = None
    ):
        self.project_id = project_id
        self.location = location
        self.logger = logging.getLogger(__name__)
        self.model_names = model_names or {
            "fast": settings.FAST_MODEL_NAME,
            "high-capacity": settings.HIGH_CAPACITY_MODEL_NAME,
        }
        self._models: Dict[str, GenerativeModel] = {}

        # Initialize Vertex AI
        try:
            vertexai.init(project=project_id, location=location)
            self.logger.info(f"Vertex AI initialized successfully for project {project_id}")
        except Exception as e:
            self.logger.error(f"Failed to initialize Vertex AI: {str(e)}")
            raise

    def get_model(self, alias: str) -> GenerativeModel:
        model_name = self.model_names.get(alias, self.model_names["fast"])
        if model_name not in self._models:
            self._models[model_name] = GenerativeModel(model_name)
        return self._models[model_name]

    @retry(
        stop=stop_after_attempt(settings.PROVIDER_MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(TransientProviderError),
        reraise=True
    )
    async def call_structured(
        self,
        model: str,
        prompt: str,
        schema: Optional[Dict[str, Any]],
        options: Optional[Dict[str, Any]] = None
    ) -> ProviderResponse:
        options = options or {}
        generation_config = GenerationConfig(
            temperature=options.get("temperature", 0.7),
            max_output_tokens=options.get("max_tokens", settings.MAX_OUTPUT_TOKENS),
            response_mime_type="application/json",
            response_schema=schema,
            candidate_count=1
        )

        self.logger.debug(
            "[vertex] call_structured",
            extra={"model": model, "prompt_len": len(prompt or ""), "options": options}
        )
        try:
            response = await self.get_model(model).generate_content_async(
                [prompt],
                generation_config=generation_config
            )
        except TRANSIENT_ERRORS as e:
            self.logger.warning(f"[vertex] Transient error, may retry: {e}")
            raise TransientProviderError(f"Vertex AI transient error: {e}") from e
        except google_exceptions.GoogleAPICallError as e:
            self.logger.error(f"[vertex] API call failed: {e}")
            raise ProviderError(f"Vertex AI call failed: {e}") from e

        text = self._extract_response_text(response)
        tokens_used = self._extract_token_usage(response)
        if not text:
            finishes = [str(getattr(c, "finish_reason", None)) for c in getattr(response, "candidates", []) or []]
            self.logger.warning("[vertex] Empty response from model", extra={"finishes": finishes})
            raise ProviderError("Vertex AI returned an empty response")

        self.logger.info(
            "[vertex] model response received",
            extra={"model": model, "chars": len(text), "tokens_used": tokens_used}
        )
        return ProviderResponse(content=text, tokens_used=tokens_used)

    def _extract_response_text(self, response: Any) -> Optional[str]:
        """Extract text from a Vertex AI response, handling candidates and multi-part content"""
        try:
            text_attr = getattr(response, "text", None)
            if isinstance(text_attr, str) and text_attr.strip():
                return text_attr
        except ValueError:
            # .text raises when the response has several parts or was blocked
            pass

        parts_text = []
        for cand in getattr(response, "candidates", None) or []:
            content = getattr(cand, "content", None)
            for part in getattr(content, "parts", None) or []:
                t = getattr(part, "text", None)
                if t:
                    parts_text.append(t)

        combined = "\n".join(parts_text).strip()
        self.logger.debug("[vertex] combined parts length", extra={"len": len(combined)})
        return combined or None

    @staticmethod
    def _extract_token_usage(response: Any) -> int:
        usage = getattr(response, "usage_metadata", None)
        if not usage:
            return 0
        total = getattr(usage, "total_token_count", None)
        if isinstance(total, int):
            return total
        prompt_tokens = getattr(usage, "prompt_token_count", 0) or 0
        output_tokens = getattr(usage, "candidates_token_count", 0) or 0
        return int(prompt_tokens) + int(output_tokens)

    def describe(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "location": self.location,
            "models": dict(self.model_names),
        }
