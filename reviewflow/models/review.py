from sqlalchemy import Column, String, DateTime, Boolean, Text, ForeignKey, Index, Uuid, Enum as SQLEnum, text
import uuid
import enum
from reviewflow.db.session import Base
from reviewflow.models.campaign import _utcnow

# Stored as order_id when the campaign collects a product selection instead of an order number
ORDER_ID_NOT_COLLECTED = "N/A"


class SatisfactionRating(str, enum.Enum):
    """Five ordered levels, best first."""
    VERY_SATISFIED = "very_satisfied"
    SOMEWHAT_SATISFIED = "somewhat_satisfied"
    NEUTRAL = "neutral"
    SOMEWHAT_DISSATISFIED = "somewhat_dissatisfied"
    VERY_DISSATISFIED = "very_dissatisfied"

    @property
    def is_positive(self) -> bool:
        return self in POSITIVE_RATINGS


POSITIVE_RATINGS = frozenset({SatisfactionRating.VERY_SATISFIED, SatisfactionRating.SOMEWHAT_SATISFIED})


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        # One review per order per campaign; the sentinel is exempt
        Index(
            "uq_reviews_campaign_order",
            "campaign_id",
            "order_id",
            unique=True,
            postgresql_where=text(f"order_id <> '{ORDER_ID_NOT_COLLECTED}'"),
            sqlite_where=text(f"order_id <> '{ORDER_ID_NOT_COLLECTED}'"),
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    campaign_id = Column(Uuid(as_uuid=True), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(String, nullable=False, default=ORDER_ID_NOT_COLLECTED)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    asin = Column(String, nullable=True)
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False)
    customer_phone = Column(String, nullable=True)
    satisfaction_rating = Column(
        SQLEnum(
            SatisfactionRating,
            name="satisfaction_rating",
            native_enum=False,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
    )
    used_over_7_days = Column(Boolean, nullable=False)
    review_text = Column(Text, nullable=True)
    marketplace = Column(String, nullable=False)  # Copied from the campaign at submission time
    is_verified = Column(Boolean, default=False, nullable=False)  # True only when the order was confirmed by the verification service
    review_screenshot_url = Column(String, nullable=True)
    gift_sent = Column(Boolean, default=False, nullable=False)  # Flipped later by the campaign owner
    submitted_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
