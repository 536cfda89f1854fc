"""
Database models -- SQLAlchemy ORM definitions.
Compatible with both PostgreSQL and SQLite.
"""

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

from tripplanner.core.config import settings

Base = declarative_base()

PLAN_STATUSES = ("draft", "generated", "archived")
TRAVEL_PACES = ("slow", "moderate", "intensive")
FEEDBACK_RATINGS = ("thumbs_up", "thumbs_down")


def _uuid() -> str:
    return str(uuid.uuid4())


def _one_of(column: str, values) -> str:
    """SQL CHECK expression restricting `column` to `values` (NULL allowed)."""
    allowed = ", ".join(f"'{v}'" for v in values)
    return f"{column} IS NULL OR {column} IN ({allowed})"


class Profile(Base):
    """
    Per-user settings and generation quota.
    The id is the user id issued by the authentication provider.
    """
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    generations_remaining = Column(Integer, nullable=False, default=lambda: settings.default_generations)
    travel_pace = Column(String(20), nullable=True)
    preferences = Column(JSON, nullable=True)  # ordered list of interest tags
    onboarding_completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("generations_remaining >= 0", name="ck_profiles_generations_non_negative"),
        CheckConstraint(_one_of("travel_pace", TRAVEL_PACES), name="ck_profiles_travel_pace"),
    )


class Plan(Base):
    """
    A user's trip. Starts as a draft, becomes `generated` once the AI
    itinerary is stored in `generated_content`, and ends up `archived`.
    """
    __tablename__ = "plans"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    destination = Column(String(200), nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="draft", index=True)
    generated_content = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    fixed_points = relationship(
        "FixedPoint",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="FixedPoint.event_at",
    )
    feedback = relationship("Feedback", back_populates="plan", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_plans_user_status", "user_id", "status"),
        CheckConstraint(_one_of("status", PLAN_STATUSES), name="ck_plans_status"),
    )


class FixedPoint(Base):
    """A time-locked event the generated itinerary must keep verbatim."""
    __tablename__ = "fixed_points"

    id = Column(String(36), primary_key=True, default=_uuid)
    plan_id = Column(String(36), ForeignKey("plans.id", ondelete="CASCADE"), nullable=False, index=True)
    location = Column(String(300), nullable=False)
    event_at = Column(DateTime(timezone=True), nullable=False)
    event_duration = Column(Integer, nullable=False)  # minutes
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    plan = relationship("Plan", back_populates="fixed_points")


class Feedback(Base):
    """One rating per (plan, user); resubmission updates the same row."""
    __tablename__ = "feedback"

    id = Column(String(36), primary_key=True, default=_uuid)
    plan_id = Column(String(36), ForeignKey("plans.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(64), nullable=False)
    rating = Column(String(20), nullable=True)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    plan = relationship("Plan", back_populates="feedback")

    __table_args__ = (
        UniqueConstraint("plan_id", "user_id", name="uq_feedback_plan_user"),
        CheckConstraint(_one_of("rating", FEEDBACK_RATINGS), name="ck_feedback_rating"),
    )
