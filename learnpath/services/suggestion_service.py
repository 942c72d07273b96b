"""'What's next' suggestions after a completed course.

Availability wins over fidelity here: when the content-service reply does
not parse into the expected shape, a fixed fallback document is returned
instead of an error.  A missing key or a failed upstream call still fails.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from learnpath.core.errors import ValidationFailed
from learnpath.services.content_client import ContentClient, strip_code_fences

logger = logging.getLogger(__name__)

_GENERATION_CONFIG = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 1024,
}


class NextStep(BaseModel):
    name: str
    description: str
    impact: str


class Suggestions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_opportunities: list[str] = Field(
        alias="currentOpportunities", min_length=3, max_length=3
    )
    next_steps: list[NextStep] = Field(alias="nextSteps", min_length=2, max_length=3)
    career_paths: list[str] = Field(alias="careerPaths", min_length=3, max_length=3)

    @field_validator("current_opportunities", "next_steps", "career_paths", mode="before")
    @classmethod
    def _unwrap_items(cls, value: Any) -> Any:
        # The model sometimes answers {"title": ..., "items": [...]} per section.
        if isinstance(value, dict) and "items" in value:
            return value["items"]
        return value


FALLBACK_SUGGESTIONS = Suggestions(
    currentOpportunities=[
        "Apply your new skills in real projects",
        "Build a portfolio showcasing your knowledge",
        "Network with professionals in your field",
    ],
    nextSteps=[
        NextStep(
            name="Advanced Topics",
            description="Deepen your expertise with advanced concepts",
            impact="Stand out as an expert in your field",
        ),
        NextStep(
            name="Capstone Project",
            description="Combine everything you learned in one end-to-end build",
            impact="Show employers practical, finished work",
        ),
    ],
    careerPaths=[
        "Freelance opportunities",
        "Full-time positions",
        "Consulting roles",
    ],
)


def build_prompt(completed_course: str) -> str:
    return f"""Based on the completed course "{completed_course}", provide structured suggestions in the following JSON format:

{{
  "currentOpportunities": ["Career opportunity 1", "Project idea 1", "Skill application 1"],
  "nextSteps": [
    {{
      "name": "Course/Skill Name",
      "description": "Why this is impactful",
      "impact": "Career impact description"
    }}
  ],
  "careerPaths": ["Career path 1", "Career path 2", "Career path 3"]
}}

Provide exactly 3 items for currentOpportunities and careerPaths, and 2-3 items for nextSteps.
Make suggestions specific, actionable, and motivational. Return ONLY valid JSON."""


def parse_suggestions(text: str) -> Suggestions:
    """Parse the reply, substituting FALLBACK_SUGGESTIONS when it is unusable."""
    try:
        return Suggestions.model_validate(json.loads(strip_code_fences(text)))
    except (ValueError, ValidationError) as exc:
        logger.warning("Failed to parse suggestions reply, using fallback: %s", exc)
        return FALLBACK_SUGGESTIONS


async def suggest_next_course(
    completed_course: str,
    *,
    client: ContentClient,
    user_preferences: Any = None,  # accepted for compatibility, not used
) -> Suggestions:
    if not completed_course.strip():
        raise ValidationFailed("Missing required parameter: completedCourse")
    logger.info("Suggesting next course for %r", completed_course)
    text = await client.generate(
        build_prompt(completed_course),
        operation="suggestions",
        generation_config=_GENERATION_CONFIG,
    )
    return parse_suggestions(text)
