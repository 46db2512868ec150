import json
import logging
from typing import Optional

import openai
from openai import OpenAI
from pydantic import ValidationError as SchemaValidationError

from app.core.config import Settings
from app.core.errors import (
    AnalysisParseError,
    ConfigurationError,
    InvalidInputError,
    UpstreamError,
)
from app.schemas.analysis import AnalysisResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert resume analyst with deep knowledge of HR and recruitment. "
    "You provide detailed, actionable feedback on how to optimize resumes for "
    "specific job descriptions."
)

RESPONSE_FORMAT = """{
  "matchPercentage": number,
  "missingSkills": [
    {
      "skill": string,
      "priority": "high" | "medium" | "low",
      "explanation": string,
      "recommendation": string,
      "suggestedText": string
    }
  ],
  "experienceReframing": [
    {
      "title": string,
      "explanation": string,
      "recommendation": string,
      "suggestedText": string
    }
  ],
  "strengths": [
    {
      "title": string,
      "explanation": string,
      "recommendation": string,
      "suggestedText": string
    }
  ],
  "suggestedSections": [
    {
      "title": string,
      "content": string
    }
  ]
}"""


def build_prompt(resume_text: str, job_description: str) -> str:
    """The user prompt for one analysis. Same inputs, same prompt."""
    return f"""Analyze the resume against the job description provided and generate detailed, actionable feedback.

Please focus on:
1. Calculate a match percentage based on skills and keyword alignment (integer from 0 to 100)
2. Identify missing skills or keywords that are critical to the job, each with a priority of high, medium or low
3. Suggest how existing experience can be reframed to better match the job requirements
4. Highlight strengths already present in the resume
5. For each item above, provide specific text (suggestedText) that the applicant can copy and directly add to their resume
6. Create 1-3 complete suggested sections (like a Skills section, Summary section, etc.) that can be directly copied into the resume

Resume:
{resume_text}

Job Description:
{job_description}

Return ONLY a JSON object in exactly this format, with no other keys:
{RESPONSE_FORMAT}

Every explanation, recommendation and section content must be a non-empty string.
Be specific and actionable. Point out exactly what should be added, modified, or emphasized.
"""


def parse_analysis(content: Optional[str]) -> AnalysisResult:
    """
    Validate the raw model output into an AnalysisResult

    Raises AnalysisParseError on empty, non-JSON or wrongly shaped output.
    """
    if not content or not content.strip():
        raise AnalysisParseError("Failed to get analysis from OpenAI: empty response")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise AnalysisParseError(f"Analysis response is not valid JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise AnalysisParseError("Analysis response is not a JSON object")

    try:
        return AnalysisResult.model_validate(data)
    except SchemaValidationError as e:
        fields = ", ".join(
            ".".join(str(loc) for loc in err["loc"]) for err in e.errors()
        )
        raise AnalysisParseError(f"Analysis response has invalid fields: {fields}") from e


class AnalysisService:
    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        temperature: float = 0.2,
        timeout: float = 60.0,
        max_retries: int = 2,
        client: Optional[OpenAI] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "AnalysisService":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            temperature=settings.openai_temperature,
            timeout=settings.openai_timeout,
            max_retries=settings.openai_max_retries,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key) or self._client is not None

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError("OPENAI_API_KEY is not set")
            # the SDK retries connection errors, timeouts and 5xx with backoff
            self._client = OpenAI(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=self.max_retries,
            )
        return self._client

    def analyze(self, resume_text: str, job_description: str) -> AnalysisResult:
        """
        Compare a resume with a job description

        Raises:
            InvalidInputError: either input is blank
            ConfigurationError: no API key
            UpstreamError: the OpenAI request failed
            AnalysisParseError: the response is not a valid analysis
        """
        if not resume_text or not resume_text.strip():
            raise InvalidInputError("Resume text is required")
        if not job_description or not job_description.strip():
            raise InvalidInputError("Job description is required")

        client = self.client
        prompt = build_prompt(resume_text, job_description)

        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                temperature=self.temperature,
            )
        except openai.APIStatusError as e:
            logger.error("OpenAI request failed with status %s", e.status_code)
            raise UpstreamError(
                f"Analysis service returned HTTP {e.status_code}", upstream_status=e.status_code
            ) from e
        except openai.APITimeoutError as e:
            logger.error("OpenAI request timed out after %ss", self.timeout)
            raise UpstreamError("Analysis service timed out") from e
        except openai.APIError as e:
            logger.error("OpenAI request failed: %s", type(e).__name__)
            raise UpstreamError("Analysis service request failed") from e

        if not response.choices:
            raise AnalysisParseError("Failed to get analysis from OpenAI: no choices returned")

        result = parse_analysis(response.choices[0].message.content)
        logger.info(
            "Analysis complete: %d%% match, %d missing skill(s)",
            result.match_percentage, len(result.missing_skills),
        )
        return result
