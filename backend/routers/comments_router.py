"""Comment and reply endpoints, nested under their report."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from repositories.database import get_db
from services import CommentService

router = APIRouter(prefix="/reports/{report_id}/comments", tags=["comments"])


@router.post(
    "", response_model=schemas.CommentCreated, status_code=status.HTTP_201_CREATED
)
async def add_comment(
    report_id: int,
    comment: schemas.CommentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> schemas.CommentCreated:
    """Comment on a report."""
    return await CommentService.add_comment(db, report_id, current_user, comment.text)


@router.post(
    "/{comment_id}/replies",
    response_model=schemas.ReplyCreated,
    status_code=status.HTTP_201_CREATED,
)
async def add_reply(
    report_id: int,
    comment_id: int,
    reply: schemas.ReplyCreate,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> schemas.ReplyCreated:
    """Reply to a comment."""
    return await CommentService.add_reply(
        db, report_id, comment_id, current_user, reply.text
    )


@router.post("/{comment_id}/vote", response_model=schemas.VoteResponse)
async def vote_comment(
    report_id: int,
    comment_id: int,
    vote: schemas.CommentVoteRequest,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> schemas.VoteResponse:
    """Toggle an up- or down-vote on a comment."""
    return await CommentService.vote_comment(
        db, report_id, comment_id, current_user.id, vote.type
    )


@router.post(
    "/{comment_id}/replies/{reply_id}/vote", response_model=schemas.VoteResponse
)
async def vote_reply(
    report_id: int,
    comment_id: int,
    reply_id: int,
    vote: schemas.CommentVoteRequest,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> schemas.VoteResponse:
    return await CommentService.vote_reply(
        db, report_id, comment_id, reply_id, current_user.id, vote.type
    )


@router.delete("/{comment_id}", response_model=schemas.MessageResponse)
async def delete_comment(
    report_id: int,
    comment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> schemas.MessageResponse:
    """Delete one's own comment with its replies."""
    return await CommentService.delete_comment(
        db, report_id, comment_id, current_user.id
    )


@router.delete(
    "/{comment_id}/replies/{reply_id}", response_model=schemas.MessageResponse
)
async def delete_reply(
    report_id: int,
    comment_id: int,
    reply_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> schemas.MessageResponse:
    """Delete one's own reply."""
    return await CommentService.delete_reply(
        db, report_id, comment_id, reply_id, current_user.id
    )
