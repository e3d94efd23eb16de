"""
At most one review per (campaign, order id).

This is the optimistic pre-check run before order verification. The partial
unique index on reviews is the authoritative check; see review_persister.
"""
from sqlalchemy.orm import Session
import uuid

from reviewflow.models.review import Review, ORDER_ID_NOT_COLLECTED


def is_duplicate_order(db: Session, campaign_id: uuid.UUID, order_id: str) -> bool:
    """Return True if a review in this campaign already uses order_id."""
    if not order_id or order_id == ORDER_ID_NOT_COLLECTED:
        return False

    existing = db.query(Review.id).filter(
        Review.campaign_id == campaign_id,
        Review.order_id == order_id,
    ).first()
    return existing is not None
