"""
Review session API: one endpoint per workflow transition.

The session id returned when a session is started is the only handle the
review page needs. Errors raised by the workflow are turned into JSON by the
handler registered in reviewflow.main.
"""
from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session
from typing import Optional

from reviewflow.db.session import get_db
from reviewflow.api.deps import get_draft_store, get_evidence_uploader, get_order_verifier
from reviewflow.schemas.campaign import CampaignPublic
from reviewflow.schemas.review import (
    CustomerDetailsIn,
    DraftView,
    EvidenceInfo,
    ExternalReviewIn,
    ExternalReviewLink,
    ProductFeedbackIn,
    SessionState,
    ThankYou,
    WriteReviewIn,
)
from reviewflow.services import review_workflow as workflow
from reviewflow.services.draft_store import DraftStore
from reviewflow.services.evidence_storage import EvidenceUploader
from reviewflow.services.order_verification import OrderVerifier

router = APIRouter()


def _draft_view(draft: Optional[workflow.DraftSubmission]) -> Optional[DraftView]:
    if draft is None:
        return None
    evidence = None
    if draft.evidence is not None:
        evidence = EvidenceInfo(
            filename=draft.evidence.filename,
            content_type=draft.evidence.content_type,
            size=draft.evidence.size,
        )
    return DraftView(
        order_id=draft.order_id,
        product_id=draft.product_id,
        satisfaction=draft.satisfaction,
        used_over_7_days=draft.used_over_7_days,
        full_name=draft.full_name,
        email=draft.email,
        phone=draft.phone,
        review_text=draft.review_text,
        asin=draft.asin,
        is_verified=draft.is_verified,
        evidence=evidence,
    )


def session_state(session: workflow.WorkflowSession) -> SessionState:
    satisfaction = session.draft.satisfaction if session.draft else None
    return SessionState(
        session_id=session.id,
        step=session.step.value,
        step_name=session.step.name.lower(),
        campaign=CampaignPublic.model_validate(session.campaign, from_attributes=True),
        draft=_draft_view(session.draft),
        external_flow_opened=session.external_flow_opened,
        evidence_required=workflow.evidence_required(satisfaction, session.external_flow_opened),
        can_go_back=session.can_go_back,
        review_id=session.review_id,
        submitted_at=session.submitted_at,
    )


@router.get("/{session_id}", response_model=SessionState)
def get_session(session_id: str, store: DraftStore = Depends(get_draft_store)):
    return session_state(store.get(session_id))


@router.post("/{session_id}/product-feedback", response_model=SessionState)
def submit_product_feedback(
    session_id: str,
    body: ProductFeedbackIn,
    db: Session = Depends(get_db),
    store: DraftStore = Depends(get_draft_store),
    verifier: OrderVerifier = Depends(get_order_verifier),
):
    """Step 1: product selection or order verification, plus satisfaction"""
    session = store.get(session_id)
    workflow.submit_product_feedback(
        db,
        session,
        verifier,
        order_id=body.order_id,
        product_id=body.product_id,
        satisfaction=body.satisfaction,
        used_over_7_days=body.used_over_7_days,
    )
    return session_state(session)


@router.post("/{session_id}/customer-details", response_model=SessionState)
def submit_customer_details(
    session_id: str,
    body: CustomerDetailsIn,
    store: DraftStore = Depends(get_draft_store),
):
    """Step 2: contact details for the thank-you gift"""
    session = store.get(session_id)
    workflow.submit_customer_details(session, full_name=body.full_name, email=body.email, phone=body.phone)
    return session_state(session)


@router.post("/{session_id}/external-review", response_model=ExternalReviewLink)
def open_external_review(
    session_id: str,
    body: ExternalReviewIn,
    store: DraftStore = Depends(get_draft_store),
):
    """Step 3: link to the marketplace review page; a screenshot is then required"""
    session = store.get(session_id)
    link = workflow.open_external_review(session, review_text=body.review_text)
    return ExternalReviewLink(review_url=link.review_url, copy_text=link.copy_text)


@router.put("/{session_id}/evidence", response_model=SessionState)
async def attach_evidence(
    session_id: str,
    file: UploadFile = File(...),
    store: DraftStore = Depends(get_draft_store),
):
    """Step 3: attach the review screenshot (stored when the review is submitted)"""
    session = store.get(session_id)
    content = await file.read()
    workflow.attach_evidence(session, content=content, filename=file.filename, content_type=file.content_type)
    return session_state(session)


@router.delete("/{session_id}/evidence", response_model=SessionState)
def remove_evidence(session_id: str, store: DraftStore = Depends(get_draft_store)):
    session = store.get(session_id)
    workflow.clear_evidence(session)
    return session_state(session)


@router.post("/{session_id}/submit", response_model=ThankYou)
def submit_review(
    session_id: str,
    body: WriteReviewIn,
    db: Session = Depends(get_db),
    store: DraftStore = Depends(get_draft_store),
    uploader: EvidenceUploader = Depends(get_evidence_uploader),
):
    """Step 3 -> 4: save the review"""
    session = store.get(session_id)
    review = workflow.submit_review(db, session, uploader, review_text=body.review_text)
    return ThankYou(
        session_id=session.id,
        step=session.step.value,
        review_id=review.id,
        submitted_at=review.submitted_at,
        promo_message=session.campaign.promo_message,
    )


@router.post("/{session_id}/back", response_model=SessionState)
def go_back(session_id: str, store: DraftStore = Depends(get_draft_store)):
    session = store.get(session_id)
    workflow.go_back(session)
    return session_state(session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def abandon_session(session_id: str, store: DraftStore = Depends(get_draft_store)):
    """Discard the session and its draft"""
    store.discard(session_id)
    return None
