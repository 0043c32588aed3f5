"""Incident report endpoints: ingestion, feed, approval, CRUD and votes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from helpers.pagination import FeedCursor, FeedLimit
from models.config import settings
from models.votes import VoteType
from repositories.database import get_db
from services import FeedService, ReportService
from services.llm_client import LanguageModelClient, get_llm_client
from services.report_service import ImageUpload
from services.storage_service import ObjectStorage, get_storage

router = APIRouter(prefix="/reports", tags=["reports"])


async def _read_images(images: List[UploadFile]) -> List[ImageUpload]:
    uploads = []
    for image in images:
        uploads.append(
            ImageUpload(
                filename=image.filename or "image",
                content_type=image.content_type or "",
                data=await image.read(),
            )
        )
    return uploads


@router.post(
    "",
    response_model=schemas.ReportCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_report(
    request: Request,
    category: Optional[str] = Form(None),
    incident_date: Optional[str] = Form(None, alias="incidentDate"),
    incident_time: Optional[str] = Form(None, alias="incidentTime"),
    location_text: Optional[str] = Form(None, alias="locationText"),
    incident_description: Optional[str] = Form(None, alias="incidentDescription"),
    lat: Optional[float] = Form(None),
    lng: Optional[float] = Form(None),
    anonymous: bool = Form(False),
    agreed: bool = Form(False),
    tags: List[str] = Form(default=[]),
    images: List[UploadFile] = File(default=[]),
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
    storage: ObjectStorage = Depends(get_storage),
    llm: LanguageModelClient = Depends(get_llm_client),
) -> schemas.ReportCreateResponse:
    """
    Submit a report with up to five images.

    Images are uploaded one at a time; if the client disconnects or any upload
    fails, images already stored for this submission are deleted. The
    response carries the AI summary, which the author approves through
    ``/reports/{id}/finalize``.
    """
    data = schemas.ReportCreate(
        category=category,
        incident_date=incident_date,
        incident_time=incident_time,
        location_text=location_text,
        incident_description=incident_description,
        lat=lat,
        lng=lng,
        anonymous=anonymous,
        agreed=agreed,
        tags=[tag.strip() for tag in tags if tag.strip()],
    )
    return await ReportService.create_report(
        db,
        current_user.id,
        data,
        await _read_images(images),
        storage,
        llm,
        is_disconnected=request.is_disconnected,
    )


@router.get("", response_model=List[schemas.Report])
async def list_reports(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User | None = Depends(auth.get_current_user_optional),
) -> List[schemas.Report]:
    """All reports, newest first, without ranking."""
    viewer_id = current_user.id if current_user else None
    return await ReportService.list_reports(db, viewer_id, skip=skip, limit=limit)


@router.get("/feed", response_model=schemas.FeedPage)
async def get_feed(
    cursor: FeedCursor = None,
    limit: FeedLimit = settings.FEED_DEFAULT_LIMIT,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> schemas.FeedPage:
    """
    Personalized feed page.

    Pass ``nextCursor`` from the previous page as ``cursor`` to continue.
    ``limit`` is capped at ``FEED_MAX_LIMIT`` (50 by default);
    larger values get a 422.
    """
    return await FeedService.get_personalized_feed(
        db, current_user.id, cursor=cursor, limit=limit
    )


@router.get("/user/{username}", response_model=List[schemas.Report])
async def get_user_reports(
    username: str,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User | None = Depends(auth.get_current_user_optional),
) -> List[schemas.Report]:
    viewer_id = current_user.id if current_user else None
    return await ReportService.get_user_reports(db, username, viewer_id)


@router.get("/{report_id}", response_model=schemas.Report)
async def get_report(
    report_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User | None = Depends(auth.get_current_user_optional),
) -> schemas.Report:
    viewer_id = current_user.id if current_user else None
    return await ReportService.get_report(db, report_id, viewer_id)


@router.put("/{report_id}", response_model=schemas.Report)
async def update_report(
    report_id: int,
    update: schemas.ReportUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> schemas.Report:
    """Edit the visible description of one's own report."""
    return await ReportService.update_report(
        db, report_id, current_user.id, update.description
    )


@router.delete("/{report_id}", response_model=schemas.MessageResponse)
async def delete_report(
    report_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
    storage: ObjectStorage = Depends(get_storage),
) -> schemas.MessageResponse:
    """Delete a report (owner or admin) and its stored images."""
    await ReportService.delete_report(db, report_id, current_user, storage)
    return schemas.MessageResponse(message="Report deleted successfully")


@router.post("/{report_id}/finalize", response_model=schemas.Report)
async def finalize_report(
    report_id: int,
    finalize: Optional[schemas.FinalizeRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
    storage: ObjectStorage = Depends(get_storage),
    llm: LanguageModelClient = Depends(get_llm_client),
) -> schemas.Report:
    """
    Approve the AI summary, optionally edited, and generate the full report.

    The full report is generated before the response is returned.
    """
    edited_summary = finalize.edited_summary if finalize else None
    return await ReportService.finalize_report(
        db, report_id, current_user.id, edited_summary, storage, llm
    )


@router.post("/{report_id}/upvote", response_model=schemas.VoteResponse)
async def upvote_report(
    report_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> schemas.VoteResponse:
    """Toggle an upvote; removes a downvote by the same user."""
    return await ReportService.vote_report(
        db, report_id, current_user.id, VoteType.UPVOTE
    )


@router.post("/{report_id}/downvote", response_model=schemas.VoteResponse)
async def downvote_report(
    report_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> schemas.VoteResponse:
    """Toggle a downvote; removes an upvote by the same user."""
    return await ReportService.vote_report(
        db, report_id, current_user.id, VoteType.DOWNVOTE
    )
