"""
Extraction model client.

Wraps the prompt-and-schema contract with the LLM: build the prompt, call
the model, strip markdown fences, and hand back a {"jobs": [...]} payload.
The Gemini implementation uses the google-genai SDK; tests plug in their
own ExtractionClient subclass.
"""
import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from google import genai
from google.genai import types as genai_types
from pydantic import ValidationError as PydanticValidationError

from jobboard.exceptions import ConfigError, ExtractionError, ValidationError
from jobboard.schemas.ingest import ExtractedJobCandidate
from jobboard.services.prompts import build_extraction_prompt

logger = logging.getLogger(__name__)


_CANDIDATE_SCHEMA = genai_types.Schema(
    type=genai_types.Type.OBJECT,
    properties={
        "title": genai_types.Schema(type=genai_types.Type.STRING),
        "company": genai_types.Schema(type=genai_types.Type.STRING),
        "location": genai_types.Schema(type=genai_types.Type.STRING),
        "salary": genai_types.Schema(type=genai_types.Type.STRING),
        "job_type": genai_types.Schema(type=genai_types.Type.STRING),
        "application_link": genai_types.Schema(type=genai_types.Type.STRING),
        "contact": genai_types.Schema(type=genai_types.Type.STRING),
        "deadline": genai_types.Schema(type=genai_types.Type.STRING),
        "description": genai_types.Schema(type=genai_types.Type.STRING),
        "confidence": genai_types.Schema(type=genai_types.Type.NUMBER),
    },
)

RESPONSE_SCHEMA = genai_types.Schema(
    type=genai_types.Type.OBJECT,
    properties={
        "jobs": genai_types.Schema(type=genai_types.Type.ARRAY, items=_CANDIDATE_SCHEMA),
    },
)


def strip_code_fences(raw_text: str) -> str:
    """Remove a leading ``` / ```json fence and a trailing ``` fence."""
    cleaned = re.sub(r"^```(?:json)?\s*\n?", "", raw_text.strip(), flags=re.IGNORECASE)
    return re.sub(r"\n?\s*```\s*$", "", cleaned)


def parse_extraction_response(raw_text: Optional[str]) -> dict[str, Any]:
    """
    Turn model output into a payload with a `jobs` list.
    
    Empty output or text that is not JSON yields {"jobs": []}. A bare JSON
    array is taken as the jobs list.
    
    Raises:
        ExtractionError: If the JSON parses but `jobs` is not a list
    """
    if not raw_text or not raw_text.strip():
        return {"jobs": []}
    
    try:
        data = json.loads(strip_code_fences(raw_text))
    except json.JSONDecodeError as e:
        logger.warning(f"Extraction response is not valid JSON, treating as no jobs: {e}")
        return {"jobs": []}
    
    if isinstance(data, list):
        return {"jobs": data}
    if not isinstance(data, dict):
        return {"jobs": []}
    
    jobs = data.get("jobs")
    if jobs is None:
        return {**data, "jobs": []}
    if not isinstance(jobs, list):
        raise ExtractionError(f"Expected 'jobs' to be a list, got {type(jobs).__name__}")
    return data


def validate_candidate(raw: Any) -> ExtractedJobCandidate:
    """
    Validate one raw job object from the payload.
    
    Raises:
        ValidationError: If the object is not a mapping or has no title
    """
    if not isinstance(raw, dict):
        raise ValidationError(f"Job candidate must be an object, got {type(raw).__name__}")
    try:
        return ExtractedJobCandidate.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid job candidate: {e.errors()[0]['msg']}") from e


def parse_candidates(payload: dict[str, Any]) -> tuple[list[ExtractedJobCandidate], int]:
    """Validate every job in the payload. Returns (valid candidates, invalid count)."""
    candidates = []
    invalid = 0
    for raw in payload.get("jobs", []):
        try:
            candidates.append(validate_candidate(raw))
        except ValidationError as e:
            invalid += 1
            logger.warning(f"Dropped job candidate: {e}")
    return candidates, invalid


class ExtractionClient(ABC):
    """Base class every extraction model backend implements."""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the credential needed to call the model is available."""

    @abstractmethod
    async def complete(self, prompt: str) -> Optional[str]:
        """Send the full prompt to the model and return its raw text."""

    async def extract(self, raw_text: str) -> dict[str, Any]:
        """
        Extract job postings from a raw message.
        
        Returns:
            Payload dict guaranteed to contain a `jobs` list
            
        Raises:
            ConfigError: If the client has no credential
            ExtractionError: If the model call fails or the payload is malformed
        """
        if not self.is_configured:
            raise ConfigError("Extraction model API key is not configured")
        
        prompt = build_extraction_prompt(raw_text)
        try:
            response_text = await self.complete(prompt)
        except (ConfigError, ExtractionError):
            raise
        except Exception as e:
            raise ExtractionError(f"Extraction model call failed: {e}") from e
        
        return parse_extraction_response(response_text)


class GeminiExtractionClient(ExtractionClient):
    """Extraction backed by Google Gemini with a JSON response schema."""

    def __init__(self, api_key: Optional[str], model: str = "gemini-2.5-flash"):
        self.api_key = api_key
        self.model = model
        self._client: Optional[genai.Client] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def complete(self, prompt: str) -> Optional[str]:
        if not self.is_configured:
            raise ConfigError("GEMINI_API_KEY is required for extraction")
        
        logger.info(f"Sending message to Gemini ({self.model})...")
        response = await self._get_client().aio.models.generate_content(
            model=self.model,
            contents=prompt,
            config=genai_types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=RESPONSE_SCHEMA,
            ),
        )
        return response.text
