"""
Writes the final review record.

The evidence upload happens before the record is built, and the record is
written with a single insert. The partial unique index on
(campaign_id, order_id) is the last word on duplicates: a violation here
means another submission for the same order won the race, and the customer
sees the same DuplicateOrder error as the pre-check would have given.
"""
from typing import Callable, List, Optional
from datetime import datetime, timezone
import logging
import uuid

from sqlalchemy import asc, desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from reviewflow.core.errors import DuplicateOrder, PersistenceError, SessionNotFound
from reviewflow.models.review import Review
from reviewflow.schemas.review import ReviewCreate
from reviewflow.services.evidence_storage import EvidenceFile, EvidenceUploader

logger = logging.getLogger(__name__)

# SQLSTATE unique_violation
PG_UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == PG_UNIQUE_VIOLATION:
        return True
    return "UNIQUE constraint failed" in str(orig)


def create_review(
    db: Session,
    record: ReviewCreate,
    *,
    evidence: Optional[EvidenceFile] = None,
    uploader: Optional[EvidenceUploader] = None,
    abort_if: Optional[Callable[[], bool]] = None,
) -> Review:
    """
    Upload evidence (if any) and insert the review.

    Args:
        db: Database session
        record: Review fields collected by the workflow
        evidence: Screenshot to upload before the insert
        uploader: Evidence storage client, required when evidence is given
        abort_if: Checked after the upload; when it returns True nothing is
            written (the customer left the page while the upload ran)

    Raises UploadFailed, SessionNotFound, DuplicateOrder or PersistenceError.
    """
    if evidence is not None:
        if uploader is None:
            raise PersistenceError("No evidence storage is configured.")
        screenshot_url = uploader.upload(record.campaign_id, evidence.content, evidence.filename, evidence.content_type)
        record = record.model_copy(update={"review_screenshot_url": screenshot_url})

    if abort_if is not None and abort_if():
        logger.info("[REVIEW PERSIST] Session closed before insert for campaign %s, nothing written", record.campaign_id)
        raise SessionNotFound()

    review = Review(
        **record.model_dump(),
        gift_sent=False,
        submitted_at=datetime.now(timezone.utc),
    )

    try:
        db.add(review)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_unique_violation(e):
            logger.info(
                "[REVIEW PERSIST] Duplicate order rejected by storage for campaign %s",
                record.campaign_id,
            )
            raise DuplicateOrder() from e
        logger.error("[REVIEW PERSIST] Integrity error for campaign %s: %s", record.campaign_id, e)
        raise PersistenceError() from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("[REVIEW PERSIST] Failed to save review for campaign %s: %s", record.campaign_id, e)
        raise PersistenceError() from e

    db.refresh(review)
    logger.info(
        "[REVIEW PERSIST] Saved review %s for campaign %s (verified=%s)",
        review.id, review.campaign_id, review.is_verified,
    )
    return review


def list_campaign_reviews(db: Session, campaign_id: uuid.UUID, newest_first: bool = True) -> List[Review]:
    """Reviews for a campaign, ordered by submission time."""
    order = desc(Review.submitted_at) if newest_first else asc(Review.submitted_at)
    return (
        db.query(Review)
        .filter(Review.campaign_id == campaign_id)
        .order_by(order, Review.id)
        .all()
    )
