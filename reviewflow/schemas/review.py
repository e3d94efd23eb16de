from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from uuid import UUID
from reviewflow.models.review import SatisfactionRating, ORDER_ID_NOT_COLLECTED
from reviewflow.schemas.campaign import CampaignPublic


class ReviewBase(BaseModel):
    campaign_id: UUID
    order_id: str = ORDER_ID_NOT_COLLECTED
    product_id: Optional[UUID] = None
    asin: Optional[str] = None
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    satisfaction_rating: SatisfactionRating
    used_over_7_days: bool
    review_text: Optional[str] = None
    marketplace: str
    is_verified: bool = False
    review_screenshot_url: Optional[str] = None


class ReviewCreate(ReviewBase):
    pass


class Review(ReviewBase):
    id: UUID
    gift_sent: bool
    submitted_at: datetime

    class Config:
        from_attributes = True


# Step inputs. Fields are optional here so the workflow reports missing
# values with its own messages and keeps whatever was supplied.
class ProductFeedbackIn(BaseModel):
    order_id: Optional[str] = None
    product_id: Optional[UUID] = None
    satisfaction: Optional[SatisfactionRating] = None
    used_over_7_days: Optional[bool] = None


class CustomerDetailsIn(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class ExternalReviewIn(BaseModel):
    review_text: Optional[str] = None


class WriteReviewIn(BaseModel):
    review_text: Optional[str] = None


class ExternalReviewLink(BaseModel):
    review_url: str
    copy_text: Optional[str] = None


class EvidenceInfo(BaseModel):
    filename: str
    content_type: str
    size: int


class DraftView(BaseModel):
    order_id: Optional[str] = None
    product_id: Optional[UUID] = None
    satisfaction: Optional[SatisfactionRating] = None
    used_over_7_days: Optional[bool] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    review_text: Optional[str] = None
    asin: Optional[str] = None
    is_verified: bool = False
    evidence: Optional[EvidenceInfo] = None


class SessionState(BaseModel):
    session_id: str
    step: int
    step_name: str
    campaign: CampaignPublic
    draft: Optional[DraftView] = None
    external_flow_opened: bool = False
    evidence_required: bool = False
    can_go_back: bool = False
    review_id: Optional[UUID] = None
    submitted_at: Optional[datetime] = None


class ThankYou(BaseModel):
    session_id: str
    step: int
    review_id: UUID
    submitted_at: datetime
    promo_message: Optional[str] = None
    message: str = "Your feedback has been submitted successfully. We appreciate you taking the time!"
