"""
Report service: ingestion, approval, CRUD and voting.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

import models.schemas as schemas
import repositories.db_models as db_models
from helpers.time_utils import utc_now
from models.ai_status import AIReportStatus, advance, is_terminal
from models.config import settings
from models.exceptions import (
    ConflictException,
    DomainException,
    ImageTooLargeException,
    InsufficientPermissionsException,
    InvalidImageTypeException,
    ReportNotFoundException,
    StorageUploadException,
    TooManyImagesException,
    UploadCancelledException,
    UserNotFoundException,
    ValidationException,
)
from models.votes import VoteSet, VoteType
from repositories.report_repository import ReportRepository
from repositories.user_repository import UserRepository
from services.enrichment_service import EnrichmentService
from services.feed_service import report_view
from services.llm_client import LanguageModelClient
from services.storage_service import ObjectStorage, StoredObject, destroy_quietly

REPORT_IMAGE_FOLDER = "posts"

DisconnectCheck = Callable[[], Awaitable[bool]]


@dataclass(frozen=True)
class ImageUpload:
    """An image received with a report submission."""

    filename: str
    content_type: str
    data: bytes


class ReportService:
    """Service for incident report business logic."""

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_required(data: schemas.ReportCreate) -> None:
        required = (
            data.category,
            data.incident_date,
            data.incident_time,
            data.location_text,
        )
        if any(value is None or not value.strip() for value in required):
            raise ValidationException("Missing required fields")

    @staticmethod
    def _validate_images(images: Sequence[ImageUpload]) -> None:
        if len(images) > settings.MAX_IMAGES_PER_REPORT:
            raise TooManyImagesException(settings.MAX_IMAGES_PER_REPORT)
        for image in images:
            if not (image.content_type or "").startswith("image/"):
                raise InvalidImageTypeException()
            if len(image.data) > settings.MAX_IMAGE_BYTES:
                raise ImageTooLargeException(settings.MAX_IMAGE_BYTES)

    @staticmethod
    async def _upload_images(
        images: Sequence[ImageUpload],
        storage: ObjectStorage,
        is_disconnected: Optional[DisconnectCheck] = None,
    ) -> List[StoredObject]:
        """
        Upload images one at a time.

        If any upload fails, or the client goes away between uploads, every
        image already stored by this call is deleted before the error
        propagates, so no caller ever sees a partial image set.

        Raises:
            UploadCancelledException: If the client disconnected
            UploadTimeoutException: If storage timed out
            StorageUploadException: On any other storage failure
        """
        uploaded: List[StoredObject] = []
        try:
            for index, image in enumerate(images, start=1):
                if is_disconnected is not None and await is_disconnected():
                    logger.info(
                        f"Client disconnected before image {index}/{len(images)}"
                    )
                    raise UploadCancelledException()
                logger.debug(f"Uploading image {index}/{len(images)}: {image.filename}")
                stored = await storage.upload(
                    image.data, REPORT_IMAGE_FOLDER, image.filename, image.content_type
                )
                uploaded.append(stored)
        except DomainException:
            await ReportService._rollback_uploads(storage, uploaded)
            raise
        except Exception as e:
            await ReportService._rollback_uploads(storage, uploaded)
            raise StorageUploadException(f"Image upload failed: {e}") from e
        return uploaded

    @staticmethod
    async def _rollback_uploads(
        storage: ObjectStorage, uploaded: List[StoredObject]
    ) -> None:
        if uploaded:
            logger.warning(f"Rolling back {len(uploaded)} uploaded images")
            await destroy_quietly(storage, [obj.public_id for obj in uploaded])

    @staticmethod
    async def create_report(
        db: AsyncSession,
        author_id: int,
        data: schemas.ReportCreate,
        images: Sequence[ImageUpload],
        storage: ObjectStorage,
        llm: LanguageModelClient,
        is_disconnected: Optional[DisconnectCheck] = None,
    ) -> schemas.ReportCreateResponse:
        """
        Create a report, upload its images and write the AI summary.

        Args:
            db: Database session
            author_id: Reporting user's ID
            data: Submitted report fields
            images: Submitted images, in display order
            storage: Object storage for the images
            llm: Language-model client for the summary
            is_disconnected: Async check for client disconnect between uploads

        Returns:
            The created report, its summary and the approval flag

        Raises:
            ValidationException: If required fields are missing or an image is
                invalid
            UserNotFoundException: If the author does not exist
            UploadCancelledException: If the client disconnected mid-upload
            UploadTimeoutException: If storage timed out
            StorageUploadException: On any other storage failure
        """
        ReportService._validate_required(data)
        ReportService._validate_images(images)

        user_repo = UserRepository(db)
        author = await user_repo.get_by_id(author_id)
        if not author:
            raise UserNotFoundException("User not found")

        uploaded = await ReportService._upload_images(images, storage, is_disconnected)

        report = db_models.Report(
            user_id=author.id,
            author=author,
            description=data.incident_description,
            incident_description=data.incident_description,
            category=data.category.strip(),  # type: ignore[union-attr]
            incident_date=data.incident_date.strip(),  # type: ignore[union-attr]
            incident_time=data.incident_time.strip(),  # type: ignore[union-attr]
            location_text=data.location_text.strip(),  # type: ignore[union-attr]
            latitude=data.lat,
            longitude=data.lng,
            anonymous=data.anonymous,
            agreed=data.agreed,
            tags=list(data.tags),
            likes=[],
            upvotes=[],
            downvotes=[],
            images=[
                db_models.ReportImage(
                    url=stored.url, public_id=stored.public_id, position=position
                )
                for position, stored in enumerate(uploaded)
            ],
            comments=[],
            ai_report=db_models.AIReport(status=AIReportStatus.PROCESSING_SUMMARY),
        )

        author.posts_count = (author.posts_count or 0) + 1
        report_repo = ReportRepository(db)
        try:
            await report_repo.create(report)
        except Exception:
            await report_repo.rollback()
            await ReportService._rollback_uploads(storage, uploaded)
            raise
        logger.info(
            f"Report {report.id} created by user {author_id} "
            f"with {len(uploaded)} images"
        )

        summary = await EnrichmentService.generate_summary(report, llm)
        await report_repo.save(report)

        return schemas.ReportCreateResponse(
            message="Report created successfully",
            report=report_view(report, author_id),
            summary=summary,
            requires_approval=True,
        )

    # ------------------------------------------------------------------
    # Approval and full report
    # ------------------------------------------------------------------

    @staticmethod
    async def _get_report_or_404(
        report_repo: ReportRepository, report_id: int
    ) -> db_models.Report:
        report = await report_repo.get_by_id(report_id)
        if not report:
            raise ReportNotFoundException("Report not found")
        return report

    @staticmethod
    async def _mark_failed(db: AsyncSession, report_id: int) -> None:
        """Best-effort move of a report's AI report to ``failed``."""
        try:
            await db.rollback()
            report = await ReportRepository(db).get_by_id(report_id)
            if report is None or report.ai_report is None:
                return
            await db.refresh(report.ai_report)
            if not is_terminal(report.ai_report.status):
                EnrichmentService.mark_failed(report.ai_report)
                await db.commit()
        except Exception as e:
            logger.error(f"Could not mark AI report of report {report_id} failed: {e}")

    @staticmethod
    async def finalize_report(
        db: AsyncSession,
        report_id: int,
        user_id: int,
        edited_summary: Optional[str],
        storage: ObjectStorage,
        llm: LanguageModelClient,
    ) -> schemas.Report:
        """
        Approve (optionally editing) the summary and generate the full report.

        Args:
            db: Database session
            report_id: Report ID
            user_id: Acting user's ID
            edited_summary: Replacement summary, or None to keep the AI one
            storage: Object storage holding the report's images
            llm: Language-model client for the full report

        Returns:
            The report with its completed AI report

        Raises:
            ReportNotFoundException: If the report does not exist
            InsufficientPermissionsException: If the user is not the owner
            InvalidStatusTransitionException: If the summary is not awaiting
                approval
        """
        report_repo = ReportRepository(db)
        report = await ReportService._get_report_or_404(report_repo, report_id)

        if report.user_id != user_id:
            raise InsufficientPermissionsException(
                "Only the author can approve this report"
            )
        ai_report = report.ai_report
        if ai_report is None:
            raise ConflictException("Report has no AI report")

        ai_report.status = advance(
            ai_report.status, AIReportStatus.PROCESSING_FULL_REPORT
        )
        if edited_summary is not None and edited_summary.strip():
            ai_report.short_summary = edited_summary.strip()
        if ai_report.short_summary:
            report.description = ai_report.short_summary
        ai_report.reviewed_by_user = True
        ai_report.reviewed_at = utc_now()
        await report_repo.save(report)
        logger.info(f"Summary of report {report_id} approved by user {user_id}")

        try:
            await EnrichmentService.generate_full_report(report, llm, storage)
            await report_repo.save(report)
        except Exception:
            logger.exception(f"Full report stage failed for report {report_id}")
            await ReportService._mark_failed(db, report_id)
            raise

        logger.info(f"Full report of report {report_id} completed")
        return report_view(report, user_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get_report(
        db: AsyncSession, report_id: int, viewer_id: Optional[int] = None
    ) -> schemas.Report:
        """
        Get a single report.

        Raises:
            ReportNotFoundException: If the report does not exist
        """
        report = await ReportService._get_report_or_404(ReportRepository(db), report_id)
        return report_view(report, viewer_id)

    @staticmethod
    async def list_reports(
        db: AsyncSession,
        viewer_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[schemas.Report]:
        """List reports newest first, unranked."""
        reports = await ReportRepository(db).get_all(skip=skip, limit=limit)
        return [report_view(report, viewer_id) for report in reports]

    @staticmethod
    async def get_user_reports(
        db: AsyncSession, username: str, viewer_id: Optional[int] = None
    ) -> List[schemas.Report]:
        """
        List a user's reports newest first.

        Raises:
            UserNotFoundException: If no user has that username
        """
        user = await UserRepository(db).get_by_username(username)
        if not user:
            raise UserNotFoundException("User not found")
        reports = await ReportRepository(db).get_by_user(user.id)
        return [report_view(report, viewer_id) for report in reports]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @staticmethod
    async def update_report(
        db: AsyncSession, report_id: int, user_id: int, description: str
    ) -> schemas.Report:
        """
        Replace a report's visible description.

        Raises:
            ReportNotFoundException: If the report does not exist
            InsufficientPermissionsException: If the user is not the owner
        """
        report_repo = ReportRepository(db)
        report = await ReportService._get_report_or_404(report_repo, report_id)
        if report.user_id != user_id:
            raise InsufficientPermissionsException(
                "Only the author can edit this report"
            )
        report.description = description.strip()
        await report_repo.save(report)
        return report_view(report, user_id)

    @staticmethod
    async def delete_report(
        db: AsyncSession,
        report_id: int,
        user: db_models.User,
        storage: ObjectStorage,
    ) -> None:
        """
        Delete a report with its comments, AI report and stored images.

        Stored images are removed after the database delete commits; a failed
        image delete is logged and does not fail the request.

        Raises:
            ReportNotFoundException: If the report does not exist
            InsufficientPermissionsException: If the user is neither the
                owner nor an admin
        """
        report_repo = ReportRepository(db)
        report = await ReportService._get_report_or_404(report_repo, report_id)
        if report.user_id != user.id and not user.is_admin:
            raise InsufficientPermissionsException(
                "Not authorized to delete this report"
            )

        public_ids = [image.public_id for image in report.images]
        author = report.author
        author.posts_count = max(0, (author.posts_count or 0) - 1)
        await report_repo.delete(report)
        logger.info(f"Report {report_id} deleted by user {user.id}")

        await destroy_quietly(storage, public_ids)

    @staticmethod
    async def vote_report(
        db: AsyncSession, report_id: int, user_id: int, vote_type: VoteType
    ) -> schemas.VoteResponse:
        """
        Toggle the user's up- or down-vote on a report.

        Raises:
            ReportNotFoundException: If the report does not exist
        """
        report_repo = ReportRepository(db)
        report = await ReportService._get_report_or_404(report_repo, report_id)

        votes = VoteSet.of(report)
        new_vote = votes.toggle(user_id, vote_type)
        votes.apply_to(report)
        await report_repo.save(report)

        noun = "Upvote" if vote_type == VoteType.UPVOTE else "Downvote"
        message = (
            f"Report {vote_type.value}d" if new_vote is not None else f"{noun} removed"
        )
        return schemas.VoteResponse(
            message=message,
            upvotes=votes.upvote_count,
            downvotes=votes.downvote_count,
            user_vote=new_vote,
        )
