"""
Loads a campaign and its linked products for the public review page.
"""
from dataclasses import dataclass
from typing import Optional, Tuple
import logging
import uuid

from sqlalchemy.orm import Session, selectinload

from reviewflow.core.errors import NotFound
from reviewflow.models.campaign import Campaign

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductSnapshot:
    id: uuid.UUID
    title: str
    asin: str
    image_url: Optional[str] = None


@dataclass(frozen=True)
class ResolvedCampaign:
    """Read-only copy of a campaign, taken once per review session."""
    id: uuid.UUID
    name: str
    marketplace: str
    promo_message: Optional[str] = None
    image_url: Optional[str] = None
    products: Tuple[ProductSnapshot, ...] = ()

    @property
    def has_products(self) -> bool:
        return len(self.products) > 0

    def find_product(self, product_id) -> Optional[ProductSnapshot]:
        for product in self.products:
            if product.id == product_id:
                return product
        return None


def resolve_campaign(db: Session, campaign_id: uuid.UUID) -> ResolvedCampaign:
    """
    Return the campaign with its linked products, or raise NotFound.

    Inactive campaigns are reported as not found as well; the review page
    shows the same message for both.
    """
    campaign = (
        db.query(Campaign)
        .options(selectinload(Campaign.products))
        .filter(Campaign.id == campaign_id)
        .first()
    )

    if campaign is None or not campaign.is_active:
        logger.info("[CAMPAIGN] Campaign %s not found or inactive", campaign_id)
        raise NotFound()

    products = tuple(
        ProductSnapshot(id=p.id, title=p.title, asin=p.asin, image_url=p.image_url)
        for p in sorted(campaign.products, key=lambda p: p.title.lower())
    )

    return ResolvedCampaign(
        id=campaign.id,
        name=campaign.name,
        marketplace=campaign.marketplace,
        promo_message=campaign.promo_message,
        image_url=campaign.image_url,
        products=products,
    )
