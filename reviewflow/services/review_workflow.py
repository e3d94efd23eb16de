"""
Review collection workflow.

A customer goes through four steps:

    1. PRODUCT_FEEDBACK  - product or order number, satisfaction, 7-day usage
    2. CUSTOMER_DETAILS  - name, email, optional phone
    3. WRITE_REVIEW      - optional review text, optional marketplace review
                           with screenshot evidence; submitting saves the review
    4. THANK_YOU         - terminal

Each step is a transition function that either advances the session or
raises a ReviewFlowError. A failed transition leaves the session on the same
step with the draft as the customer last filled it in.

Open question carried over from the product: when the customer says they
opened the marketplace review page we require a screenshot, but nothing
checks that the review was actually posted there.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
import enum
import logging
import re
import threading
import uuid
from urllib.parse import urlsplit

from sqlalchemy.orm import Session

from reviewflow.core.config import settings
from reviewflow.core.errors import InvalidStep, SessionNotFound, ValidationError, DuplicateOrder
from reviewflow.models.review import Review, SatisfactionRating, ORDER_ID_NOT_COLLECTED
from reviewflow.schemas.review import ReviewCreate
from reviewflow.services.campaign_resolver import ResolvedCampaign, resolve_campaign
from reviewflow.services.evidence_storage import EvidenceFile, EvidenceUploader
from reviewflow.services.order_verification import OrderVerifier
from reviewflow.services.review_persister import create_review
from reviewflow.services.submission_guard import is_duplicate_order

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

REVIEW_SUGGESTIONS = [
    "This product exceeded my expectations! The quality is outstanding.",
    "Great value for money. Would definitely recommend to others.",
    "Fast shipping and excellent customer service. Very satisfied!",
    "The product works exactly as described. Perfect for my needs.",
    "Amazing quality and durability. Worth every penny!",
]

SATISFACTION_LABELS = {
    SatisfactionRating.VERY_SATISFIED: "Very Satisfied",
    SatisfactionRating.SOMEWHAT_SATISFIED: "Somewhat Satisfied",
    SatisfactionRating.NEUTRAL: "Neither Satisfied Nor Dissatisfied",
    SatisfactionRating.SOMEWHAT_DISSATISFIED: "Somewhat Dissatisfied",
    SatisfactionRating.VERY_DISSATISFIED: "Very Dissatisfied",
}


class WorkflowStep(int, enum.Enum):
    PRODUCT_FEEDBACK = 1
    CUSTOMER_DETAILS = 2
    WRITE_REVIEW = 3
    THANK_YOU = 4


# Single-step backward moves; no other step can go back
_PREVIOUS_STEP = {
    WorkflowStep.CUSTOMER_DETAILS: WorkflowStep.PRODUCT_FEEDBACK,
    WorkflowStep.WRITE_REVIEW: WorkflowStep.CUSTOMER_DETAILS,
}


@dataclass
class DraftSubmission:
    order_id: Optional[str] = None
    product_id: Optional[uuid.UUID] = None
    satisfaction: Optional[SatisfactionRating] = None
    used_over_7_days: Optional[bool] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    review_text: Optional[str] = None
    evidence: Optional[EvidenceFile] = None
    asin: Optional[str] = None
    is_verified: bool = False


@dataclass
class WorkflowSession:
    id: str
    campaign: ResolvedCampaign
    step: WorkflowStep = WorkflowStep.PRODUCT_FEEDBACK
    draft: Optional[DraftSubmission] = field(default_factory=DraftSubmission)
    external_flow_opened: bool = False
    cancelled: bool = False
    # Set while the final submission is uploading/inserting
    submitting: bool = False
    review_id: Optional[uuid.UUID] = None
    submitted_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_seen_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def can_go_back(self) -> bool:
        return self.step in _PREVIOUS_STEP


@dataclass(frozen=True)
class ExternalReviewLink:
    review_url: str
    copy_text: Optional[str] = None


def evidence_required(satisfaction: Optional[SatisfactionRating], external_flow_opened: bool) -> bool:
    """
    A screenshot is mandatory only for positive ratings where the customer
    went on to the marketplace's own review page.
    """
    return satisfaction is not None and satisfaction.is_positive and external_flow_opened


def review_suggestions() -> List[str]:
    return list(REVIEW_SUGGESTIONS)


def marketplace_review_url(marketplace: str, asin: str) -> str:
    domain = marketplace.strip().lower()
    if "://" in domain:
        domain = urlsplit(domain).netloc
    if domain.startswith("www."):
        domain = domain[len("www."):]
    return f"https://www.{domain.rstrip('/')}/review/review-your-purchases/?asin={asin}"


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _text_or_none(value: Optional[str]) -> Optional[str]:
    """Keep free text as typed, but treat blank text as absent."""
    if value is None or not value.strip():
        return None
    return value


def _require_step(session: WorkflowSession, step: WorkflowStep):
    if session.cancelled:
        raise SessionNotFound()
    if session.submitting:
        raise InvalidStep("Your review is already being submitted.")
    if session.step != step:
        raise InvalidStep(
            f"This action belongs to step {step.value}, but the review is at step {session.step.value}."
        )


def _claim_submission(session: WorkflowSession):
    """Only one final submission per session may run at a time."""
    with session.lock:
        _require_step(session, WorkflowStep.WRITE_REVIEW)
        session.submitting = True


def _touch(session: WorkflowSession):
    session.last_seen_at = datetime.now(timezone.utc)


def start_session(db: Session, store, campaign_id: uuid.UUID) -> WorkflowSession:
    """Resolve the campaign and open a fresh session at step 1."""
    campaign = resolve_campaign(db, campaign_id)
    session = store.create(campaign)
    logger.info(
        "[REVIEW WORKFLOW] Started session %s for campaign %s (%d linked products)",
        session.id, campaign.id, len(campaign.products),
    )
    return session


def submit_product_feedback(
    db: Session,
    session: WorkflowSession,
    verifier: OrderVerifier,
    *,
    order_id: Optional[str] = None,
    product_id: Optional[uuid.UUID] = None,
    satisfaction: Optional[SatisfactionRating] = None,
    used_over_7_days: Optional[bool] = None,
) -> WorkflowSession:
    """
    Step 1. Campaigns with linked products take a product selection; the
    rest take an order number that must pass the duplicate check and the
    verification service.
    """
    _require_step(session, WorkflowStep.PRODUCT_FEEDBACK)
    _touch(session)
    campaign = session.campaign
    draft = session.draft

    # Keep what the customer entered even if the step fails
    draft.satisfaction = satisfaction
    draft.used_over_7_days = used_over_7_days
    if campaign.has_products:
        draft.product_id = product_id
    else:
        draft.order_id = _clean(order_id)
    draft.asin = None
    draft.is_verified = False

    if satisfaction is None or used_over_7_days is None:
        raise ValidationError(
            field="satisfaction" if satisfaction is None else "used_over_7_days",
        )

    if campaign.has_products:
        if product_id is None:
            raise ValidationError("Please select the product you are reviewing.", field="product_id")
        product = campaign.find_product(product_id)
        if product is None:
            raise ValidationError("The selected product is not part of this campaign.", field="product_id")

        draft.order_id = None
        draft.asin = product.asin
        draft.is_verified = False  # Picked by the customer, not confirmed by the verification service
        session.step = WorkflowStep.CUSTOMER_DETAILS
        logger.info("[REVIEW WORKFLOW] Session %s: product %s selected", session.id, product.id)
        return session

    if product_id is not None:
        raise ValidationError("This campaign asks for an order number, not a product.", field="product_id")
    if not draft.order_id:
        raise ValidationError("Please provide your Amazon Order Number.", field="order_id")
    if draft.order_id.upper() == ORDER_ID_NOT_COLLECTED:
        raise ValidationError("Please provide a valid Amazon Order Number.", field="order_id")

    order = draft.order_id
    if is_duplicate_order(db, campaign.id, order):
        logger.info("[REVIEW WORKFLOW] Session %s: order already reviewed in campaign %s", session.id, campaign.id)
        raise DuplicateOrder()

    asin = verifier.verify(campaign.id, order)

    if session.cancelled:
        # Customer left while the verification call was running
        logger.info("[REVIEW WORKFLOW] Session %s closed during verification, result dropped", session.id)
        raise SessionNotFound()

    draft.product_id = None
    draft.asin = asin
    draft.is_verified = True
    session.step = WorkflowStep.CUSTOMER_DETAILS
    logger.info("[REVIEW WORKFLOW] Session %s: order verified, ASIN %s", session.id, asin)
    return session


def submit_customer_details(
    session: WorkflowSession,
    *,
    full_name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
) -> WorkflowSession:
    """Step 2."""
    _require_step(session, WorkflowStep.CUSTOMER_DETAILS)
    _touch(session)
    draft = session.draft

    draft.full_name = _clean(full_name)
    draft.email = _clean(email)
    draft.phone = _clean(phone)

    if not draft.full_name:
        raise ValidationError(field="full_name")
    if not draft.email:
        raise ValidationError(field="email")
    if not EMAIL_RE.match(draft.email):
        raise ValidationError("Please enter a valid email address.", field="email")

    session.step = WorkflowStep.WRITE_REVIEW
    return session


def open_external_review(session: WorkflowSession, *, review_text: Optional[str] = None) -> ExternalReviewLink:
    """
    Step 3. Offer the marketplace's own review page for positive ratings.
    The drafted text is handed back so the page can copy it to the clipboard.
    """
    _require_step(session, WorkflowStep.WRITE_REVIEW)
    _touch(session)
    draft = session.draft

    if review_text is not None:
        draft.review_text = review_text
    if draft.satisfaction is None or not draft.satisfaction.is_positive:
        raise ValidationError("Writing a marketplace review is offered for positive ratings only.", field="satisfaction")
    if not draft.asin or not session.campaign.marketplace:
        raise ValidationError("No product is known for this review.", field="asin")

    session.external_flow_opened = True
    logger.info("[REVIEW WORKFLOW] Session %s: external review flow opened", session.id)
    return ExternalReviewLink(
        review_url=marketplace_review_url(session.campaign.marketplace, draft.asin),
        copy_text=_text_or_none(draft.review_text),
    )


def attach_evidence(
    session: WorkflowSession,
    *,
    content: bytes,
    filename: Optional[str],
    content_type: Optional[str],
) -> WorkflowSession:
    """Step 3. Attach (or replace) the review screenshot."""
    _require_step(session, WorkflowStep.WRITE_REVIEW)
    _touch(session)

    if not content:
        raise ValidationError("The screenshot file is empty.", field="evidence")
    if not content_type or not content_type.lower().startswith("image/"):
        raise ValidationError("Please upload an image file.", field="evidence")
    if len(content) > settings.MAX_EVIDENCE_BYTES:
        raise ValidationError(
            f"The screenshot is too large (max {settings.MAX_EVIDENCE_BYTES // (1024 * 1024)} MB).",
            field="evidence",
        )

    session.draft.evidence = EvidenceFile(
        content=content,
        filename=filename or "screenshot",
        content_type=content_type.lower(),
    )
    return session


def clear_evidence(session: WorkflowSession) -> WorkflowSession:
    _require_step(session, WorkflowStep.WRITE_REVIEW)
    _touch(session)
    session.draft.evidence = None
    return session


def build_review_record(session: WorkflowSession) -> ReviewCreate:
    draft = session.draft
    campaign = session.campaign
    return ReviewCreate(
        campaign_id=campaign.id,
        order_id=draft.order_id or ORDER_ID_NOT_COLLECTED,
        product_id=draft.product_id,
        asin=draft.asin,
        customer_name=draft.full_name,
        customer_email=draft.email,
        customer_phone=draft.phone,
        satisfaction_rating=draft.satisfaction,
        used_over_7_days=draft.used_over_7_days,
        review_text=_text_or_none(draft.review_text),
        marketplace=campaign.marketplace,
        is_verified=draft.is_verified,
    )


def submit_review(
    db: Session,
    session: WorkflowSession,
    uploader: Optional[EvidenceUploader],
    *,
    review_text: Optional[str] = None,
) -> Review:
    """
    Step 3 -> 4. Saves the review; the session only moves to THANK_YOU once
    the insert has succeeded. A second submit arriving while the first is
    still running gets InvalidStep.
    """
    _claim_submission(session)
    try:
        _touch(session)
        draft = session.draft

        if review_text is not None:
            draft.review_text = review_text

        if evidence_required(draft.satisfaction, session.external_flow_opened) and draft.evidence is None:
            raise ValidationError(
                "Please upload a screenshot of your submitted review on Amazon.",
                field="evidence",
            )

        review = create_review(
            db,
            build_review_record(session),
            evidence=draft.evidence,
            uploader=uploader,
            abort_if=lambda: session.cancelled,
        )

        session.step = WorkflowStep.THANK_YOU
        session.review_id = review.id
        session.submitted_at = review.submitted_at
        session.draft = None
        session.external_flow_opened = False
    finally:
        session.submitting = False
    logger.info("[REVIEW WORKFLOW] Session %s completed with review %s", session.id, review.id)
    return review


def go_back(session: WorkflowSession) -> WorkflowSession:
    if session.cancelled:
        raise SessionNotFound()
    if session.submitting:
        raise InvalidStep("Your review is already being submitted.")
    previous = _PREVIOUS_STEP.get(session.step)
    if previous is None:
        raise InvalidStep("You can't go back from this step.")
    _touch(session)
    if session.step == WorkflowStep.WRITE_REVIEW:
        # The marketplace flow has to be opened again on return
        session.external_flow_opened = False
    session.step = previous
    return session
