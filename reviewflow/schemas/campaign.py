from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID


class ProductPublic(BaseModel):
    id: UUID
    title: str
    asin: str
    image_url: Optional[str] = None

    class Config:
        from_attributes = True


class CampaignPublic(BaseModel):
    id: UUID
    name: str
    marketplace: str
    promo_message: Optional[str] = None
    image_url: Optional[str] = None
    products: List[ProductPublic] = []

    class Config:
        from_attributes = True


class SatisfactionOption(BaseModel):
    value: str
    label: str


class CampaignLanding(BaseModel):
    """Everything the review page needs before the customer starts."""
    campaign: CampaignPublic
    requires_order_id: bool
    satisfaction_options: List[SatisfactionOption]
    review_suggestions: List[str]
