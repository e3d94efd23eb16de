from reviewflow.models.campaign import Campaign, campaign_products
from reviewflow.models.product import Product
from reviewflow.models.review import Review, SatisfactionRating, ORDER_ID_NOT_COLLECTED

__all__ = [
    "Campaign", "campaign_products", "Product",
    "Review", "SatisfactionRating", "ORDER_ID_NOT_COLLECTED",
]
