"""Feedback data access layer."""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session as DBSession

from shared.models.entities import FeedbackRecord

logger = logging.getLogger(__name__)


class FeedbackRepository:
    """Repository for feedback persistence."""

    def __init__(self, db: DBSession):
        self.db = db

    def create(
        self,
        trace_id: str,
        content_id: str,
        feedback: str,
        event_timestamp: datetime,
        recall_correct: Optional[int] = None,
        recall_total: Optional[int] = None,
        reasons: Optional[list[str]] = None,
    ) -> FeedbackRecord:
        """Insert a feedback row and commit."""
        row = FeedbackRecord(
            trace_id=trace_id,
            content_id=content_id,
            feedback=feedback,
            recall_correct=recall_correct,
            recall_total=recall_total,
            reasons=",".join(reasons) if reasons else None,
            event_timestamp=event_timestamp,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        logger.info(f"Stored feedback {row.id} for content {content_id}")
        return row

    def count(self) -> int:
        return self.db.query(func.count(FeedbackRecord.id)).scalar() or 0
