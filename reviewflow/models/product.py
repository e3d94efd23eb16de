from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.orm import relationship
import uuid
from reviewflow.db.session import Base
from reviewflow.models.campaign import campaign_products, _utcnow


class Product(Base):
    __tablename__ = "products"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    asin = Column(String, nullable=False, index=True)  # Amazon Standard Identification Number
    image_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    campaigns = relationship("Campaign", secondary=campaign_products, back_populates="products")
