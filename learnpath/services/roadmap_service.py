"""Roadmap generation: prompt → content service → course + milestones + progress.

The generator asks the content service for a JSON roadmap, validates it,
and persists the course, its ordered milestones and one progress record
per milestone (first active, the rest locked) as a single atomic unit.
A reply that cannot be parsed is fatal; there is no partial roadmap.
"""

from __future__ import annotations

import datetime
import json
import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from learnpath.core.errors import (
    ContentParseError,
    LearnPathError,
    PersistenceError,
    ValidationFailed,
)
from learnpath.core.metrics import ROADMAPS_GENERATED
from learnpath.models.course import Course, Milestone, QuizQuestion
from learnpath.models.progress import ProgressRecord
from learnpath.repos.store import Store
from learnpath.services.content_client import ContentClient, strip_code_fences

logger = logging.getLogger(__name__)

MILESTONE_COUNTS: dict[str, int] = {"1 week": 3, "2 weeks": 4, "4 weeks": 5}
DEFAULT_MILESTONE_COUNT = 4

PREFERENCE_RULES: dict[str, str] = {
    "Videos": "- Include 2-3 YouTube videos and 1 website/documentation link per milestone\n",
    "Notes": "- Include 2 websites/documentation links and 1 video per milestone\n",
    "Interactive": "- Include coding playgrounds, GitHub labs, and interactive tutorials\n",
}

SKILL_RULES: dict[str, str] = {
    "Beginner": (
        "- Use simple explanations and easier quiz questions\n"
        "- Focus on fundamentals and basic concepts\n"
    ),
    "Advanced": (
        "- Include advanced documentation and complex tutorials\n"
        "- Create challenging quiz questions\n"
    ),
}

GOAL_RULES: dict[str, str] = {
    "Exam": (
        "- Create practice-style quiz questions similar to exam format\n"
        "- Focus on testable concepts\n"
    ),
    "Project": (
        "- Include 1 small project idea or exercise per milestone\n"
        "- Focus on practical application\n"
    ),
    "Placement": (
        "- Add interview-style questions and resources\n"
        "- Include real-world problem-solving scenarios\n"
    ),
}

_SYSTEM_PREAMBLE = (
    "You are a learning expert. Always respond with valid JSON only, "
    "no additional text.\n\n"
)

_GENERATION_CONFIG = {"temperature": 0.7, "maxOutputTokens": 8192}


@dataclass(frozen=True, slots=True)
class RoadmapRequest:
    user_id: UUID
    topic: str
    duration: str
    goal: str = ""
    skill_level: str = ""
    preference: str = ""


@dataclass(frozen=True, slots=True)
class GeneratedRoadmap:
    course: Course
    milestones: list[Milestone]
    progress: list[ProgressRecord]


# ---------------------------------------------------------------------------
# Reply schema
# ---------------------------------------------------------------------------


class _QuizItem(BaseModel):
    question: str
    options: list[str] = Field(min_length=2)
    correct: int

    @model_validator(mode="after")
    def _correct_in_range(self) -> _QuizItem:
        if not 0 <= self.correct < len(self.options):
            raise ValueError("correct must index into options")
        return self


class _MilestoneItem(BaseModel):
    title: str
    order: int | None = None
    resources: dict[str, Any] = Field(default_factory=dict)
    quiz: list[_QuizItem] = Field(min_length=1)


class _RoadmapPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course_name: str = Field(alias="courseName", min_length=1)
    duration: str | None = None
    milestones: list[_MilestoneItem] = Field(min_length=1)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def milestone_count_for(duration: str) -> int:
    return MILESTONE_COUNTS.get(duration, DEFAULT_MILESTONE_COUNT)


def build_prompt(req: RoadmapRequest) -> str:
    count = milestone_count_for(req.duration)
    rules = (
        PREFERENCE_RULES.get(req.preference, "")
        + SKILL_RULES.get(req.skill_level, "")
        + GOAL_RULES.get(req.goal, "")
    )
    return f"""{_SYSTEM_PREAMBLE}You are an expert learning assistant. Generate a detailed learning roadmap for: "{req.topic}" with duration: {req.duration}.

User Profile:
- Skill Level: {req.skill_level}
- Learning Preference: {req.preference}
- Goal: {req.goal}

Create a JSON response with this exact structure:
{{
  "courseName": "Course title here",
  "duration": "{req.duration}",
  "milestones": [
    {{
      "title": "Milestone title",
      "order": 1,
      "resources": {{
        "website": "High-quality website URL with description",
        "youtube": [
          {{"title": "Exact video title", "channel": "Channel name", "url": "YouTube URL"}}
        ],
        "additional": [
          {{"title": "Resource title", "url": "URL", "type": "article"}}
        ]
      }},
      "quiz": [
        {{
          "question": "Quiz question here?",
          "options": ["Option A", "Option B", "Option C", "Option D"],
          "correct": 0
        }}
      ]
    }}
  ]
}}

Personalization Requirements:
- Create exactly {count} milestones
- Each milestone should have 3-5 quiz questions
{rules}- Include real, working URLs for resources
- Make sure the progression is logical and builds upon previous milestones
- Quiz questions should test understanding of the milestone content

Topic: {req.topic}
Duration: {req.duration}"""


def parse_roadmap(text: str, *, expected_milestones: int) -> _RoadmapPayload:
    """Parse the content-service reply.  Any failure is a ContentParseError."""
    cleaned = strip_code_fences(text)
    try:
        raw = json.loads(cleaned)
        payload = _RoadmapPayload.model_validate(raw)
    except (ValueError, ValidationError) as exc:
        logger.error("Failed to parse roadmap reply: %s  reply=%r", exc, text[:500])
        raise ContentParseError("Invalid JSON response from AI") from None

    if len(payload.milestones) < expected_milestones:
        logger.error(
            "Roadmap reply has %d milestones, expected %d",
            len(payload.milestones),
            expected_milestones,
        )
        raise ContentParseError("Invalid JSON response from AI")
    if len(payload.milestones) > expected_milestones:
        logger.warning(
            "Roadmap reply has %d milestones, keeping the first %d",
            len(payload.milestones),
            expected_milestones,
        )
        payload.milestones = payload.milestones[:expected_milestones]
    return payload


def assign_order(items: list[_MilestoneItem]) -> list[int]:
    """Use the generated ``order`` values when they are exactly 1..n.

    Anything else (missing, duplicated, gapped) falls back to array
    position so order_index stays 1-based and contiguous.
    """
    n = len(items)
    given = [m.order for m in items]
    if all(o is not None for o in given) and sorted(given) == list(range(1, n + 1)):  # type: ignore[type-var]
        return [int(o) for o in given]  # type: ignore[arg-type]
    return list(range(1, n + 1))


def _validate(req: RoadmapRequest) -> None:
    if not req.topic.strip():
        raise ValidationFailed("Missing required parameter: topic")
    if not req.duration.strip():
        raise ValidationFailed("Missing required parameter: duration")


# ---------------------------------------------------------------------------
# Operation
# ---------------------------------------------------------------------------


async def generate_roadmap(
    req: RoadmapRequest,
    *,
    store: Store,
    client: ContentClient,
    now: int | None = None,
) -> GeneratedRoadmap:
    _validate(req)
    count = milestone_count_for(req.duration)
    logger.info(
        "Generating roadmap user=%s topic=%r duration=%r milestones=%d",
        req.user_id,
        req.topic,
        req.duration,
        count,
    )

    try:
        text = await client.generate(
            build_prompt(req),
            operation="roadmap",
            generation_config=_GENERATION_CONFIG,
        )
    except LearnPathError:
        ROADMAPS_GENERATED.labels(outcome="upstream_error").inc()
        raise

    try:
        payload = parse_roadmap(text, expected_milestones=count)
    except ContentParseError:
        ROADMAPS_GENERATED.labels(outcome="parse_error").inc()
        raise

    created_at = now if now is not None else int(
        datetime.datetime.now(datetime.UTC).timestamp()
    )
    course = Course.new(
        user_id=req.user_id,
        name=payload.course_name,
        duration=payload.duration or req.duration,
        created_at=created_at,
        roadmap=payload.model_dump(by_alias=True),
    )
    milestones = [
        Milestone.new(
            course_id=course.id,
            title=item.title,
            order_index=order_index,
            resources=item.resources,
            quiz=tuple(
                QuizQuestion(
                    question=q.question, options=tuple(q.options), correct=q.correct
                )
                for q in item.quiz
            ),
        )
        for item, order_index in zip(payload.milestones, assign_order(payload.milestones))
    ]
    milestones.sort(key=lambda m: m.order_index)
    progress = [
        ProgressRecord.new(
            user_id=req.user_id,
            course_id=course.id,
            milestone_id=m.id,
            status="active" if i == 0 else "locked",
        )
        for i, m in enumerate(milestones)
    ]

    step = "course"
    try:
        async with store.atomic():
            await store.courses.add(course)
            step = "milestones"
            await store.courses.add_milestones(milestones)
            step = "progress records"
            await store.progress.add_many(progress)
    except Exception as exc:
        ROADMAPS_GENERATED.labels(outcome="persistence_error").inc()
        logger.exception("Roadmap persistence failed at step=%s", step)
        raise PersistenceError(f"Failed to create {step}") from exc

    ROADMAPS_GENERATED.labels(outcome="created").inc()
    logger.info(
        "Roadmap created course=%s user=%s milestones=%d",
        course.id,
        req.user_id,
        len(milestones),
    )
    return GeneratedRoadmap(course=course, milestones=milestones, progress=progress)
