"""SQLAlchemy ORM database models."""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Text, DateTime, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class FeedbackRecord(Base):
    """Feedback table - one row per user verdict relayed by the client."""
    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trace_id = Column(String(36), nullable=False)
    content_id = Column(String(256), nullable=False)
    feedback = Column(String(16), nullable=False)  # 'useful' | 'not_useful'
    recall_correct = Column(Integer, nullable=True)
    recall_total = Column(Integer, nullable=True)
    reasons = Column(Text, nullable=True)  # comma-separated reason codes
    event_timestamp = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_feedback_trace", "trace_id"),
        Index("idx_feedback_content", "content_id"),
    )
