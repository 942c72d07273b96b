from __future__ import annotations

import asyncio
import json

import pytest

from learnpath.core.errors import MissingCredential, ValidationFailed
from learnpath.services.suggestion_service import (
    FALLBACK_SUGGESTIONS,
    parse_suggestions,
    suggest_next_course,
)
from tests.conftest import FakeContentClient


def test_fallback_has_expected_shape() -> None:
    assert len(FALLBACK_SUGGESTIONS.current_opportunities) == 3
    assert 2 <= len(FALLBACK_SUGGESTIONS.next_steps) <= 3
    assert len(FALLBACK_SUGGESTIONS.career_paths) == 3


def test_parse_accepts_titled_sections() -> None:
    reply = json.dumps(
        {
            "currentOpportunities": {"title": "Now", "items": ["a", "b", "c"]},
            "nextSteps": {
                "title": "Next",
                "items": [
                    {"name": "n1", "description": "d1", "impact": "i1"},
                    {"name": "n2", "description": "d2", "impact": "i2"},
                    {"name": "n3", "description": "d3", "impact": "i3"},
                ],
            },
            "careerPaths": {"title": "Careers", "items": ["x", "y", "z"]},
        }
    )
    s = parse_suggestions(reply)
    assert s.current_opportunities == ["a", "b", "c"]
    assert [n.name for n in s.next_steps] == ["n1", "n2", "n3"]


def test_parse_falls_back_on_too_many_next_steps() -> None:
    step = {"name": "n", "description": "d", "impact": "i"}
    reply = json.dumps(
        {
            "currentOpportunities": ["a", "b", "c"],
            "nextSteps": [step] * 4,
            "careerPaths": ["x", "y", "z"],
        }
    )
    assert parse_suggestions(reply) is FALLBACK_SUGGESTIONS


def test_parse_falls_back_on_garbage() -> None:
    assert parse_suggestions("") is FALLBACK_SUGGESTIONS


def test_blank_course_rejected() -> None:
    with pytest.raises(ValidationFailed):
        asyncio.run(suggest_next_course(" ", client=FakeContentClient("{}")))


def test_missing_credential_propagates() -> None:
    client = FakeContentClient(MissingCredential("Gemini API key not configured"))
    with pytest.raises(MissingCredential):
        asyncio.run(suggest_next_course("Python", client=client))
