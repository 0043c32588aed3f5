"""
Database models using SQLAlchemy 2.0 style with Mapped type hints.

A report is an aggregate: its images, comments (with replies) and AI report
are always loaded and saved together with it, so every relationship inside
the aggregate uses ``lazy="selectin"``. The follow graph is a plain
association table and is only ever queried by id, never traversed.
"""

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from helpers.time_utils import utc_now
from models.ai_status import AIReportStatus
from repositories.database import Base

DEFAULT_PROFILE_PICTURE = "/static/defaults/profile.jpg"
DEFAULT_BANNER_PICTURE = "/static/defaults/banner.png"


follows = Table(
    "follows",
    Base.metadata,
    Column(
        "follower_id",
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "following_id",
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("created_at", DateTime, default=utc_now),
    Index("ix_follows_following", "following_id"),
)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    username: Mapped[str] = mapped_column(
        String, unique=True, index=True, nullable=False
    )
    email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String, nullable=False)
    dob: Mapped[date] = mapped_column(Date, nullable=False)

    # Profile ("F-8, Islamabad")
    location: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    bio: Mapped[str] = mapped_column(Text, default="")
    profile_picture: Mapped[str] = mapped_column(
        String, default=DEFAULT_PROFILE_PICTURE
    )
    banner_picture: Mapped[str] = mapped_column(String, default=DEFAULT_BANNER_PICTURE)
    badges: Mapped[List[str]] = mapped_column(JSON, default=list)

    posts_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, default=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)


class Report(Base):
    __tablename__ = "reports"
    __table_args__ = (
        Index("ix_reports_created_at", "created_at"),
        Index("ix_reports_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )

    # Visible text; starts as the incident description and is replaced by the
    # approved AI summary
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list)

    # Raw user-submitted fields
    incident_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String, nullable=False)
    incident_date: Mapped[str] = mapped_column(String, nullable=False)
    incident_time: Mapped[str] = mapped_column(String, nullable=False)
    location_text: Mapped[str] = mapped_column(String, nullable=False)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    anonymous: Mapped[bool] = mapped_column(Boolean, default=False)
    agreed: Mapped[bool] = mapped_column(Boolean, default=False)

    # Engagement (persisted vote sets, see models.votes.VoteSet)
    likes: Mapped[List[int]] = mapped_column(JSON, default=list)
    upvotes: Mapped[List[int]] = mapped_column(JSON, default=list)
    downvotes: Mapped[List[int]] = mapped_column(JSON, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now
    )

    author: Mapped["User"] = relationship("User", lazy="selectin")
    images: Mapped[List["ReportImage"]] = relationship(
        "ReportImage",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="ReportImage.position",
        lazy="selectin",
    )
    comments: Mapped[List["Comment"]] = relationship(
        "Comment",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="(Comment.created_at, Comment.id)",
        lazy="selectin",
    )
    ai_report: Mapped[Optional["AIReport"]] = relationship(
        "AIReport",
        back_populates="report",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="selectin",
    )


class ReportImage(Base):
    __tablename__ = "report_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    report_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False
    )
    url: Mapped[str] = mapped_column(String, nullable=False)
    public_id: Mapped[str] = mapped_column(String, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0)

    report: Mapped["Report"] = relationship("Report", back_populates="images")


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (Index("ix_comments_report", "report_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    report_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    text: Mapped[str] = mapped_column(String(1000), nullable=False)
    upvotes: Mapped[List[int]] = mapped_column(JSON, default=list)
    downvotes: Mapped[List[int]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    report: Mapped["Report"] = relationship("Report", back_populates="comments")
    author: Mapped["User"] = relationship("User", lazy="selectin")
    replies: Mapped[List["Reply"]] = relationship(
        "Reply",
        back_populates="comment",
        cascade="all, delete-orphan",
        order_by="(Reply.created_at, Reply.id)",
        lazy="selectin",
    )


class Reply(Base):
    __tablename__ = "replies"
    __table_args__ = (Index("ix_replies_comment", "comment_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    comment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    text: Mapped[str] = mapped_column(String(500), nullable=False)
    upvotes: Mapped[List[int]] = mapped_column(JSON, default=list)
    downvotes: Mapped[List[int]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    comment: Mapped["Comment"] = relationship("Comment", back_populates="replies")
    author: Mapped["User"] = relationship("User", lazy="selectin")


class AIReport(Base):
    __tablename__ = "ai_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    report_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("reports.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    status: Mapped[AIReportStatus] = mapped_column(
        Enum(AIReportStatus, values_callable=lambda e: [m.value for m in e]),
        default=AIReportStatus.PROCESSING_SUMMARY,
        nullable=False,
    )

    # Public-facing summary (user-editable)
    short_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Full forensic narrative
    full_report: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Structured evidence extracted by stage 2
    weapons: Mapped[List[str]] = mapped_column(JSON, default=list)
    vehicle_types: Mapped[List[str]] = mapped_column(JSON, default=list)
    license_plates: Mapped[List[str]] = mapped_column(JSON, default=list)
    suspects_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    faces_detected: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    ocr_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    confidence_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    reviewed_by_user: Mapped[bool] = mapped_column(Boolean, default=False)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now
    )

    report: Mapped["Report"] = relationship("Report", back_populates="ai_report")
