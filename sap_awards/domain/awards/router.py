"""Awards router - FastAPI endpoints for nominations, voting and categories"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.orm import Session

from ... import config
from ...auth import get_current_admin
from ...cache import get_cache
from ...database import get_db
from ...models import User
from ...outbox import dispatch_events
from ...rate_limiter import create_rate_limiter, get_client_ip
from .schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    NominationAdmin,
    NominationCreate,
    NominationPublic,
    NominationUpdate,
    StatusUpdate,
    VoteCreate,
)
from .service import AwardsService, PhotoUpload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/awards", tags=["Awards"])

nomination_limiter = create_rate_limiter(
    config.NOMINATION_RATE_LIMIT, config.NOMINATION_RATE_WINDOW, key_prefix="nomination"
)
vote_limiter = create_rate_limiter(config.VOTE_RATE_LIMIT, config.VOTE_RATE_WINDOW, key_prefix="vote")

SortField = Literal["votes", "totalVotes", "createdAt", "updatedAt", "nomineeName"]
SortOrder = Literal["asc", "desc"]


def get_awards_service(db: Session = Depends(get_db), cache=Depends(get_cache)) -> AwardsService:
    """Dependency injection for AwardsService"""
    return AwardsService(db, cache)


async def read_photo(upload: Optional[UploadFile]) -> Optional[PhotoUpload]:
    if upload is None or not upload.filename:
        return None
    contents = await upload.read()
    return contents, upload.filename, upload.content_type


# ============================================================================
# CATEGORIES
# ============================================================================


@router.get("/categories")
async def get_categories(service: AwardsService = Depends(get_awards_service)):
    """Active award categories with nomination counts"""
    categories, cached = service.list_categories()
    body = {"status": "success", "data": {"categories": categories}}
    if cached:
        body["cached"] = True
    return body


@router.post("/categories", status_code=201)
async def create_category(
    data: CategoryCreate,
    admin: User = Depends(get_current_admin),
    service: AwardsService = Depends(get_awards_service),
):
    category = service.create_category(data)
    return {
        "status": "success",
        "message": "Award category created successfully",
        "data": {"category": CategoryResponse.from_model(category)},
    }


@router.put("/categories/{category_id}")
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    admin: User = Depends(get_current_admin),
    service: AwardsService = Depends(get_awards_service),
):
    category = service.update_category(category_id, data)
    return {
        "status": "success",
        "message": "Award category updated successfully",
        "data": {"category": CategoryResponse.from_model(category)},
    }


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: int,
    admin: User = Depends(get_current_admin),
    service: AwardsService = Depends(get_awards_service),
):
    service.delete_category(category_id)
    return {"status": "success", "message": "Award category deleted successfully"}


# ============================================================================
# PUBLIC NOMINATIONS
# ============================================================================


@router.post("/nominations", status_code=201)
async def submit_nomination(
    background_tasks: BackgroundTasks,
    nomineeName: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    nominatorName: Optional[str] = Form(None),
    nominatorEmail: Optional[str] = Form(None),
    nomineeTitle: Optional[str] = Form(None),
    nomineeCompany: Optional[str] = Form(None),
    nomineeCountry: Optional[str] = Form(None),
    nominationReason: Optional[str] = Form(None),
    achievements: Optional[str] = Form(None),
    impactDescription: Optional[str] = Form(None),
    nominatorPhone: Optional[str] = Form(None),
    nominatorOrganization: Optional[str] = Form(None),
    nomineePhoto: Optional[UploadFile] = File(None),
    _: None = Depends(nomination_limiter),
    service: AwardsService = Depends(get_awards_service),
):
    """Submit a nomination (multipart form with optional nominee photo)"""
    data = NominationCreate(
        nomineeName=nomineeName,
        category=category,
        nominatorName=nominatorName,
        nominatorEmail=nominatorEmail,
        nomineeTitle=nomineeTitle,
        nomineeCompany=nomineeCompany,
        nomineeCountry=nomineeCountry,
        nominationReason=nominationReason,
        achievements=achievements,
        impactDescription=impactDescription,
        nominatorPhone=nominatorPhone,
        nominatorOrganization=nominatorOrganization,
    )
    nomination, event_ids = service.submit_nomination(data, await read_photo(nomineePhoto))
    await dispatch_events(event_ids, background_tasks)
    return {
        "status": "success",
        "message": "Nomination submitted successfully! It will be reviewed before being published.",
        "data": {"nomination": NominationPublic.from_model(nomination)},
    }


@router.get("/nominations")
async def get_nominations(
    category: Optional[int] = Query(None),
    status: str = Query("approved"),
    country: Optional[str] = Query(None, max_length=100),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sortBy: SortField = Query("votes"),
    sortOrder: SortOrder = Query("desc"),
    service: AwardsService = Depends(get_awards_service),
):
    """Public nomination listing with filters, sorting and pagination"""
    data, cached = service.list_public_nominations(
        category=category,
        status=status,
        country=country,
        search=search,
        page=page,
        limit=limit,
        sort_by=sortBy,
        sort_order=sortOrder,
    )
    body = {"status": "success", "data": data}
    if cached:
        body["cached"] = True
    return body


@router.get("/nominations/{nomination_id}/vote-status")
async def get_vote_status(
    nomination_id: int,
    email: Optional[str] = Query(None),
    service: AwardsService = Depends(get_awards_service),
):
    return {"status": "success", "data": service.vote_status(nomination_id, email)}


@router.post("/nominations/{nomination_id}/vote")
async def vote_for_nomination(
    nomination_id: int,
    data: VoteCreate,
    request: Request,
    _: None = Depends(vote_limiter),
    service: AwardsService = Depends(get_awards_service),
):
    result = service.vote(nomination_id, data, get_client_ip(request))
    return {"status": "success", "message": "Vote recorded successfully", "data": result}


@router.get("/nominations/{id_or_slug}")
async def get_nomination(id_or_slug: str, service: AwardsService = Depends(get_awards_service)):
    """Public lookup by numeric id or slug"""
    nomination = service.get_public_nomination(id_or_slug)
    return {"status": "success", "data": {"nomination": NominationPublic.from_model(nomination)}}


# ============================================================================
# ADMIN
# ============================================================================


@router.get("/admin/nominations")
async def get_admin_nominations(
    status: Optional[str] = Query(None),
    category: Optional[int] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    sortBy: SortField = Query("createdAt"),
    sortOrder: SortOrder = Query("desc"),
    admin: User = Depends(get_current_admin),
    service: AwardsService = Depends(get_awards_service),
):
    """All nominations regardless of status, with per-status counts"""
    data = service.list_admin_nominations(
        status=status,
        category=category,
        search=search,
        page=page,
        limit=limit,
        sort_by=sortBy,
        sort_order=sortOrder,
    )
    return {"status": "success", "data": data}


@router.get("/admin/stats")
async def get_stats(
    admin: User = Depends(get_current_admin),
    service: AwardsService = Depends(get_awards_service),
):
    return {"status": "success", "data": service.get_stats()}


@router.patch("/nominations/{nomination_id}/status")
async def update_nomination_status(
    nomination_id: int,
    data: StatusUpdate,
    background_tasks: BackgroundTasks,
    admin: User = Depends(get_current_admin),
    service: AwardsService = Depends(get_awards_service),
):
    nomination, event_ids = service.update_status(nomination_id, data, admin)
    await dispatch_events(event_ids, background_tasks)
    return {
        "status": "success",
        "message": f"Nomination status updated to {data.status}",
        "data": {"nomination": NominationAdmin.from_model(nomination)},
    }


@router.put("/nominations/{nomination_id}")
async def update_nomination(
    nomination_id: int,
    nomineeName: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    nominatorName: Optional[str] = Form(None),
    nominatorEmail: Optional[str] = Form(None),
    nomineeTitle: Optional[str] = Form(None),
    nomineeCompany: Optional[str] = Form(None),
    nomineeCountry: Optional[str] = Form(None),
    nominationReason: Optional[str] = Form(None),
    achievements: Optional[str] = Form(None),
    impactDescription: Optional[str] = Form(None),
    nominatorPhone: Optional[str] = Form(None),
    nominatorOrganization: Optional[str] = Form(None),
    nomineePhoto: Optional[UploadFile] = File(None),
    admin: User = Depends(get_current_admin),
    service: AwardsService = Depends(get_awards_service),
):
    """Partial edit of a nomination (multipart form, optional replacement photo)"""
    data = NominationUpdate(
        nomineeName=nomineeName,
        category=category or None,
        nominatorName=nominatorName,
        nominatorEmail=nominatorEmail,
        nomineeTitle=nomineeTitle,
        nomineeCompany=nomineeCompany,
        nomineeCountry=nomineeCountry,
        nominationReason=nominationReason,
        achievements=achievements,
        impactDescription=impactDescription,
        nominatorPhone=nominatorPhone,
        nominatorOrganization=nominatorOrganization,
    )
    nomination = service.update_nomination(nomination_id, data, await read_photo(nomineePhoto))
    return {
        "status": "success",
        "message": "Nomination updated successfully",
        "data": {"nomination": NominationAdmin.from_model(nomination)},
    }


@router.delete("/nominations/{nomination_id}")
async def delete_nomination(
    nomination_id: int,
    background_tasks: BackgroundTasks,
    admin: User = Depends(get_current_admin),
    service: AwardsService = Depends(get_awards_service),
):
    event_ids = service.delete_nomination(nomination_id)
    await dispatch_events(event_ids, background_tasks)
    return {"status": "success", "message": "Nomination deleted successfully"}
