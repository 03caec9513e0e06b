"""
Progress Database Models
Learners, per-exercise progress and per-level progress
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ducklingo.core.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)  # Supabase auth uid
    email = Column(String, unique=True, index=True)
    full_name = Column(String)
    current_level = Column(String, default="A1")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    progress = relationship("UserProgress", back_populates="user")
    level_progress = relationship("UserLevelProgress", back_populates="user")


class UserProgress(Base):
    """
    One row per (user, exercise). Answers are appended to question_results;
    legacy rows hold a single result object instead of a list.
    """

    __tablename__ = "user_progress"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    exercise_id = Column(Integer, nullable=False, index=True)
    completed = Column(Boolean, default=False)
    score = Column(Integer)
    attempts = Column(Integer, default=0)
    question_results = Column(JSON)
    completed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="progress")


class UserLevelProgress(Base):
    """
    Per-level progress (A1..C2)
    """

    __tablename__ = "user_level_progress"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    level = Column(String, nullable=False)
    started_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True))
    progress_percentage = Column(Float, default=0)

    user = relationship("User", back_populates="level_progress")
