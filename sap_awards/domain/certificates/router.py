"""Certificate router - public verification and download, admin management"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...errors import NotFoundError
from ...models import User
from ...outbox import dispatch_events
from ..awards.schemas import Pagination
from .schemas import BulkGenerateRequest, CertificateAdmin, CertificatePublic
from .service import CertificateService, verification_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/certificates", tags=["Certificates"])


def get_certificate_service(db: Session = Depends(get_db)) -> CertificateService:
    """Dependency injection for CertificateService"""
    return CertificateService(db)


# ============================================================================
# PUBLIC
# ============================================================================


@router.get("/verify/{certificate_id}")
async def verify_certificate(
    certificate_id: str, service: CertificateService = Depends(get_certificate_service)
):
    """Check a certificate id and count the verification"""
    try:
        certificate = service.verify(certificate_id)
    except NotFoundError as e:
        return JSONResponse(status_code=404, content={"status": "fail", "valid": False, "message": e.message})
    return {
        "status": "success",
        "data": {"valid": True, "certificate": CertificatePublic.from_model(certificate)},
    }


@router.get("/download/{filename}")
async def download_certificate(filename: str, service: CertificateService = Depends(get_certificate_service)):
    path, redirect_url = service.get_download(filename)
    if redirect_url:
        return RedirectResponse(redirect_url)
    return FileResponse(path, media_type="application/pdf", filename=filename)


# ============================================================================
# ADMIN
# ============================================================================


@router.get("")
async def list_certificates(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    kind: Optional[Literal["winner", "finalist", "participant"]] = Query(None),
    admin: User = Depends(get_current_admin),
    service: CertificateService = Depends(get_certificate_service),
):
    items, total = service.list_certificates(page, limit, kind)
    return {
        "status": "success",
        "data": {
            "certificates": [CertificateAdmin.from_model(c) for c in items],
            "pagination": Pagination.build(page, limit, total),
        },
    }


@router.get("/nominations/{nomination_id}")
async def get_certificate_info(
    nomination_id: int,
    admin: User = Depends(get_current_admin),
    service: CertificateService = Depends(get_certificate_service),
):
    nomination, certificate = service.get_info(nomination_id)
    return {
        "status": "success",
        "data": {
            "nominationId": nomination.id,
            "nomineeName": nomination.nominee_name,
            "certificate": CertificateAdmin.from_model(certificate),
            "verifyUrl": verification_url(certificate.certificate_id),
            "history": [CertificateAdmin.from_model(c) for c in service.history(nomination.id)],
        },
    }


@router.post("/nominations/{nomination_id}/generate", status_code=202)
async def generate_certificate(
    nomination_id: int,
    background_tasks: BackgroundTasks,
    admin: User = Depends(get_current_admin),
    service: CertificateService = Depends(get_certificate_service),
):
    event_id = service.queue_generation(nomination_id)
    await dispatch_events([event_id], background_tasks)
    return {"status": "success", "message": "Certificate generation queued"}


@router.post("/nominations/{nomination_id}/regenerate", status_code=202)
async def regenerate_certificate(
    nomination_id: int,
    background_tasks: BackgroundTasks,
    admin: User = Depends(get_current_admin),
    service: CertificateService = Depends(get_certificate_service),
):
    event_id = service.regenerate(nomination_id)
    await dispatch_events([event_id], background_tasks)
    return {"status": "success", "message": "Certificate regeneration queued"}


@router.delete("/nominations/{nomination_id}")
async def revoke_certificate(
    nomination_id: int,
    admin: User = Depends(get_current_admin),
    service: CertificateService = Depends(get_certificate_service),
):
    certificate = service.revoke(nomination_id)
    return {
        "status": "success",
        "message": "Certificate revoked successfully",
        "data": {"certificate": CertificateAdmin.from_model(certificate) if certificate else None},
    }


@router.post("/bulk-generate", status_code=202)
async def bulk_generate_certificates(
    data: BulkGenerateRequest,
    background_tasks: BackgroundTasks,
    admin: User = Depends(get_current_admin),
    service: CertificateService = Depends(get_certificate_service),
):
    event_ids = service.queue_bulk_generation(data.status)
    await dispatch_events(event_ids, background_tasks)
    return {
        "status": "success",
        "message": f"Queued certificate generation for {len(event_ids)} nomination(s)",
        "data": {"queued": len(event_ids)},
    }
