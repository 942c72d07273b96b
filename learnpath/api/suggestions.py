from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from learnpath.api.schemas import CamelModel
from learnpath.services.content_client import ContentClient, get_content_client
from learnpath.services.suggestion_service import Suggestions, suggest_next_course

router = APIRouter(prefix="/v1", tags=["suggestions"])


class SuggestNextCourseIn(CamelModel):
    completed_course: str = ""
    user_preferences: Any = None


class SuggestNextCourseOut(CamelModel):
    success: bool = True
    suggestions: Suggestions


@router.post("/suggest-next-course", response_model=SuggestNextCourseOut)
async def suggest(
    body: SuggestNextCourseIn,
    client: Annotated[ContentClient, Depends(get_content_client)],
) -> SuggestNextCourseOut:
    suggestions = await suggest_next_course(
        body.completed_course,
        client=client,
        user_preferences=body.user_preferences,
    )
    return SuggestNextCourseOut(suggestions=suggestions)
