"""Certificate issuance and listing.

POST /v1/generate-certificate            issue (idempotent per user+course)
GET  /v1/users/{user_id}/certificates    list issued, newest first
"""

from __future__ import annotations

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends

from learnpath.api.dependencies import get_store
from learnpath.api.schemas import CamelModel, CertificateOut
from learnpath.middleware.request_context import bind_user
from learnpath.repos.store import Store
from learnpath.services.certificate_service import issue_certificate

router = APIRouter(prefix="/v1", tags=["certificates"])


class GenerateCertificateIn(CamelModel):
    user_id: UUID
    course_id: UUID


class GenerateCertificateOut(CamelModel):
    success: bool = True
    message: str | None = None
    certificate_id: UUID | None = None
    certificate: CertificateOut | None = None
    certificate_data: dict[str, Any] | None = None


@router.post(
    "/generate-certificate",
    response_model=GenerateCertificateOut,
    response_model_exclude_none=True,
)
async def generate_certificate(
    body: GenerateCertificateIn,
    store: Annotated[Store, Depends(get_store)],
) -> GenerateCertificateOut:
    bind_user(body.user_id)
    issued = await issue_certificate(
        user_id=body.user_id, course_id=body.course_id, store=store
    )
    if not issued.created:
        return GenerateCertificateOut(
            message="Certificate already exists",
            certificate_id=issued.certificate.id,
        )
    return GenerateCertificateOut(
        certificate=CertificateOut.of(issued.certificate),
        certificate_data=issued.certificate.certificate_data,
    )


@router.get("/users/{user_id}/certificates", response_model=list[CertificateOut])
async def list_certificates(
    user_id: UUID,
    store: Annotated[Store, Depends(get_store)],
) -> list[CertificateOut]:
    certificates = await store.certificates.list_for_user(user_id)
    return [CertificateOut.of(c) for c in certificates]
