"""Display-name profiles, read by the certificate issuer.

PUT /v1/profiles/{user_id}  upsert
GET /v1/profiles/{user_id}  read
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from learnpath.api.dependencies import get_store
from learnpath.api.schemas import CamelModel
from learnpath.core.errors import NotFound, ValidationFailed
from learnpath.models.profile import Profile
from learnpath.repos.store import Store

router = APIRouter(prefix="/v1/profiles", tags=["profiles"])


class ProfileIn(CamelModel):
    name: str


class ProfileOut(CamelModel):
    user_id: UUID
    name: str


@router.put("/{user_id}", response_model=ProfileOut)
async def put_profile(
    user_id: UUID,
    body: ProfileIn,
    store: Annotated[Store, Depends(get_store)],
) -> ProfileOut:
    name = body.name.strip()
    if not name:
        raise ValidationFailed("name must not be empty")
    saved = await store.profiles.upsert(Profile(user_id=user_id, name=name))
    return ProfileOut(user_id=saved.user_id, name=saved.name)


@router.get("/{user_id}", response_model=ProfileOut)
async def get_profile(
    user_id: UUID,
    store: Annotated[Store, Depends(get_store)],
) -> ProfileOut:
    profile = await store.profiles.get(user_id)
    if profile is None:
        raise NotFound("User profile not found")
    return ProfileOut(user_id=profile.user_id, name=profile.name)
