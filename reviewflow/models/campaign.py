from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Table, Uuid
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime, timezone
from reviewflow.db.session import Base


def _utcnow():
    return datetime.now(timezone.utc)


# A product can be linked to any number of campaigns
campaign_products = Table(
    "campaign_products",
    Base.metadata,
    Column("campaign_id", Uuid(as_uuid=True), ForeignKey("campaigns.id", ondelete="CASCADE"), primary_key=True),
    Column("product_id", Uuid(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), default=_utcnow, nullable=False),
)


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    marketplace = Column(String, nullable=False)  # Marketplace domain, e.g. amazon.com or amazon.co.uk
    promo_message = Column(String, nullable=True)  # Shown above the form and on the thank-you screen
    image_url = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    products = relationship("Product", secondary=campaign_products, back_populates="campaigns")
