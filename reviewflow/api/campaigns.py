"""
Public campaign entry point: the URL behind a campaign's QR code.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from uuid import UUID

from reviewflow.db.session import get_db
from reviewflow.api.deps import get_draft_store
from reviewflow.api.review_sessions import session_state
from reviewflow.schemas.campaign import CampaignLanding, CampaignPublic, SatisfactionOption
from reviewflow.schemas.review import SessionState
from reviewflow.services.campaign_resolver import resolve_campaign
from reviewflow.services.draft_store import DraftStore
from reviewflow.services.review_workflow import SATISFACTION_LABELS, review_suggestions, start_session

router = APIRouter()


@router.get("/{campaign_id}/review", response_model=CampaignLanding)
def get_review_page(campaign_id: UUID, db: Session = Depends(get_db)):
    """Campaign details, linked products and form options for the review page"""
    campaign = resolve_campaign(db, campaign_id)
    return CampaignLanding(
        campaign=CampaignPublic.model_validate(campaign, from_attributes=True),
        requires_order_id=not campaign.has_products,
        satisfaction_options=[
            SatisfactionOption(value=rating.value, label=label)
            for rating, label in SATISFACTION_LABELS.items()
        ],
        review_suggestions=review_suggestions(),
    )


@router.post("/{campaign_id}/review/sessions", response_model=SessionState, status_code=status.HTTP_201_CREATED)
def create_review_session(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    store: DraftStore = Depends(get_draft_store),
):
    """Start a new review session at step 1"""
    session = start_session(db, store, campaign_id)
    return session_state(session)
