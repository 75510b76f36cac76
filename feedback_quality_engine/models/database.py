"""SQLAlchemy database models for feedback and categories."""

from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Text,
    ForeignKey, Index
)
from sqlalchemy.orm import declarative_base, relationship, validates
from sqlalchemy.sql import func

from .common import CategoryMapping, FeedbackRecord

Base = declarative_base()


class User(Base):
    """SQLAlchemy model for feedback providers."""
    __tablename__ = 'users'

    id = Column(String, primary_key=True)
    full_name = Column(String(200), nullable=True)
    email = Column(String(200), unique=True, nullable=True)
    avatar_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=func.now())

    # Relationships
    feedback = relationship("Feedback", back_populates="user")


class FeedbackCategory(Base):
    """SQLAlchemy model for managed feedback categories."""
    __tablename__ = 'feedback_categories'

    id = Column(String, primary_key=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(20), nullable=True)
    project_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=func.now())

    # Relationships
    mappings = relationship("FeedbackCategoryMapping", back_populates="category")

    __table_args__ = (
        Index('idx_feedback_categories_project', 'project_id'),
    )


class Feedback(Base):
    """SQLAlchemy model for feedback left on a project element."""
    __tablename__ = 'feedback'

    id = Column(String, primary_key=True)
    project_id = Column(String, nullable=False)
    user_id = Column(String, ForeignKey('users.id'), nullable=False)
    content = Column(Text, nullable=False, default="")
    element_selector = Column(String(500), nullable=True)
    category = Column(String(100), nullable=True)  # legacy single category
    severity = Column(Integer, nullable=False, default=3)
    sentiment = Column(Float, nullable=True)

    # Quality analysis results (populated once analysis has run)
    specificity_score = Column(Float, nullable=True)
    actionability_score = Column(Float, nullable=True)
    novelty_score = Column(Float, nullable=True)

    response_time_hours = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    # Relationships
    user = relationship("User", back_populates="feedback")
    category_mappings = relationship(
        "FeedbackCategoryMapping", back_populates="feedback", cascade="all, delete-orphan"
    )

    # Indexes for performance
    __table_args__ = (
        Index('idx_feedback_project_created', 'project_id', 'created_at'),
        Index('idx_feedback_user', 'user_id'),
    )

    @validates('severity')
    def validate_severity(self, key, severity):
        if severity < 1 or severity > 5:
            raise ValueError("Severity must be between 1 and 5")
        return severity

    @validates('sentiment')
    def validate_sentiment(self, key, sentiment):
        if sentiment is not None and (sentiment < -1.0 or sentiment > 1.0):
            raise ValueError("Sentiment must be between -1.0 and 1.0")
        return sentiment

    @validates('specificity_score', 'actionability_score', 'novelty_score')
    def validate_quality_score(self, key, score):
        if score is not None and (score < 0.0 or score > 1.0):
            raise ValueError(f"{key} must be between 0.0 and 1.0")
        return score

    def to_record(self) -> FeedbackRecord:
        """Convert the row (with loaded relations) into a FeedbackRecord."""
        return FeedbackRecord(
            id=self.id,
            project_id=self.project_id,
            user_id=self.user_id,
            created_at=self.created_at,
            category=self.category,
            category_mappings=tuple(
                CategoryMapping(category_id=m.category_id, category_name=m.category.name)
                for m in self.category_mappings
            ),
            severity=self.severity,
            sentiment=self.sentiment,
            specificity_score=self.specificity_score,
            actionability_score=self.actionability_score,
            novelty_score=self.novelty_score,
            response_time_hours=self.response_time_hours,
            user_name=self.user.full_name if self.user else None,
            avatar_url=self.user.avatar_url if self.user else None,
        )


class FeedbackCategoryMapping(Base):
    """Many-to-many link between feedback and categories."""
    __tablename__ = 'feedback_category_mappings'

    feedback_id = Column(String, ForeignKey('feedback.id'), primary_key=True)
    category_id = Column(String, ForeignKey('feedback_categories.id'), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=func.now())

    # Relationships
    feedback = relationship("Feedback", back_populates="category_mappings")
    category = relationship("FeedbackCategory", back_populates="mappings")

    __table_args__ = (
        Index('idx_feedback_category_mappings_category', 'category_id'),
    )
