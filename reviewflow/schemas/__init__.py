from reviewflow.schemas.campaign import CampaignPublic, ProductPublic, CampaignLanding
from reviewflow.schemas.review import (
    Review, ReviewCreate, ProductFeedbackIn, CustomerDetailsIn, ExternalReviewIn,
    WriteReviewIn, ExternalReviewLink, SessionState, ThankYou,
)

__all__ = [
    "CampaignPublic", "ProductPublic", "CampaignLanding",
    "Review", "ReviewCreate", "ProductFeedbackIn", "CustomerDetailsIn", "ExternalReviewIn",
    "WriteReviewIn", "ExternalReviewLink", "SessionState", "ThankYou",
]
