"""Review workflow state machine tests"""
import threading
import uuid

import pytest

from reviewflow.core.errors import (
    DuplicateOrder,
    InvalidStep,
    NotFound,
    SessionNotFound,
    UploadFailed,
    ValidationError,
    VerificationFailed,
)
from reviewflow.models import Review, SatisfactionRating
from reviewflow.services import review_workflow as workflow
from reviewflow.services.review_workflow import WorkflowStep, evidence_required, marketplace_review_url
from tests.fakes import FakeUploader, FakeVerifier

PNG = b"\x89PNG\r\n\x1a\nfake-image-bytes"


def _step1_order(db, session, verifier, order_id="123-0000000-0000001",
                 satisfaction=SatisfactionRating.SOMEWHAT_DISSATISFIED):
    return workflow.submit_product_feedback(
        db, session, verifier,
        order_id=order_id, satisfaction=satisfaction, used_over_7_days=True,
    )


def _step2(session):
    return workflow.submit_customer_details(session, full_name="Jane Doe", email="jane@example.com")


def _complete(db, session, verifier, uploader, order_id="123-0000000-0000001",
              satisfaction=SatisfactionRating.NEUTRAL):
    _step1_order(db, session, verifier, order_id=order_id, satisfaction=satisfaction)
    _step2(session)
    return workflow.submit_review(db, session, uploader, review_text="Works fine.")


# Evidence predicate

@pytest.mark.parametrize("rating", list(SatisfactionRating))
def test_evidence_required_only_for_positive_rating_with_external_flow(rating):
    positive = rating in (SatisfactionRating.VERY_SATISFIED, SatisfactionRating.SOMEWHAT_SATISFIED)
    assert evidence_required(rating, True) is positive
    assert evidence_required(rating, False) is False


def test_evidence_not_required_without_rating():
    assert evidence_required(None, True) is False


# Session start

def test_start_session_unknown_campaign(db, store):
    with pytest.raises(NotFound):
        workflow.start_session(db, store, uuid.uuid4())
    assert len(store) == 0


def test_start_session_inactive_campaign(db, store, make_campaign):
    campaign = make_campaign(is_active=False)
    with pytest.raises(NotFound):
        workflow.start_session(db, store, campaign.id)


def test_start_session_snapshots_campaign(db, store, product_campaign):
    session = workflow.start_session(db, store, product_campaign.id)
    assert session.step == WorkflowStep.PRODUCT_FEEDBACK
    assert session.campaign.name == "Blender Launch"
    assert [p.asin for p in session.campaign.products] == ["B000000002"]


# Step 1, order branch

def test_scenario_a_verified_order_without_evidence(db, store, verifier, uploader, order_campaign):
    session = workflow.start_session(db, store, order_campaign.id)

    _step1_order(db, session, verifier)
    assert session.step == WorkflowStep.CUSTOMER_DETAILS
    assert session.draft.is_verified is True
    assert session.draft.asin == "B000000001"

    _step2(session)
    review = workflow.submit_review(db, session, uploader)

    assert session.step == WorkflowStep.THANK_YOU
    assert review.is_verified is True
    assert review.product_id is None
    assert review.asin == "B000000001"
    assert review.order_id == "123-0000000-0000001"
    assert review.review_screenshot_url is None
    assert uploader.uploads == []


def test_order_branch_requires_order_id(db, store, verifier, order_campaign):
    session = workflow.start_session(db, store, order_campaign.id)
    with pytest.raises(ValidationError) as exc_info:
        _step1_order(db, session, verifier, order_id="   ")
    assert exc_info.value.field == "order_id"
    assert session.step == WorkflowStep.PRODUCT_FEEDBACK
    assert verifier.calls == []


def test_order_branch_rejects_product_selection(db, store, verifier, order_campaign):
    session = workflow.start_session(db, store, order_campaign.id)
    with pytest.raises(ValidationError) as exc_info:
        workflow.submit_product_feedback(
            db, session, verifier,
            order_id="123-0000000-0000001", product_id=uuid.uuid4(),
            satisfaction=SatisfactionRating.NEUTRAL, used_over_7_days=False,
        )
    assert exc_info.value.field == "product_id"
    assert verifier.calls == []


def test_order_branch_rejects_sentinel_order_id(db, store, verifier, order_campaign):
    session = workflow.start_session(db, store, order_campaign.id)
    with pytest.raises(ValidationError):
        _step1_order(db, session, verifier, order_id="n/a")
    assert verifier.calls == []


def test_order_id_is_trimmed(db, store, verifier, order_campaign):
    session = workflow.start_session(db, store, order_campaign.id)
    _step1_order(db, session, verifier, order_id="  123-0000000-0000001 ")
    assert verifier.calls == [(order_campaign.id, "123-0000000-0000001")]


def test_missing_satisfaction_or_usage_blocks_step1(db, store, verifier, order_campaign):
    session = workflow.start_session(db, store, order_campaign.id)
    with pytest.raises(ValidationError) as exc_info:
        workflow.submit_product_feedback(db, session, verifier, order_id="123-0000000-0000001", used_over_7_days=True)
    assert exc_info.value.field == "satisfaction"

    with pytest.raises(ValidationError) as exc_info:
        workflow.submit_product_feedback(
            db, session, verifier, order_id="123-0000000-0000001", satisfaction=SatisfactionRating.NEUTRAL,
        )
    assert exc_info.value.field == "used_over_7_days"
    assert verifier.calls == []
    assert session.step == WorkflowStep.PRODUCT_FEEDBACK
    # Inputs are kept for correction
    assert session.draft.order_id == "123-0000000-0000001"
    assert session.draft.satisfaction == SatisfactionRating.NEUTRAL


def test_verification_failure_keeps_draft_and_allows_retry(db, store, verifier, order_campaign):
    session = workflow.start_session(db, store, order_campaign.id)

    with pytest.raises(VerificationFailed) as exc_info:
        _step1_order(db, session, verifier, order_id="999-0000000-0000000")
    assert "Order not found" in exc_info.value.message
    assert session.step == WorkflowStep.PRODUCT_FEEDBACK
    assert session.draft.order_id == "999-0000000-0000000"
    assert session.draft.is_verified is False

    _step1_order(db, session, verifier, order_id="123-0000000-0000002")
    assert session.step == WorkflowStep.CUSTOMER_DETAILS
    assert session.draft.asin == "B000000003"
    assert len(verifier.calls) == 2


def test_scenario_c_duplicate_order_blocked_before_verification(db, store, verifier, uploader, order_campaign):
    first = workflow.start_session(db, store, order_campaign.id)
    _complete(db, first, verifier, uploader)
    calls_after_first = len(verifier.calls)

    second = workflow.start_session(db, store, order_campaign.id)
    with pytest.raises(DuplicateOrder):
        _step1_order(db, second, verifier)

    assert len(verifier.calls) == calls_after_first
    assert second.step == WorkflowStep.PRODUCT_FEEDBACK
    assert db.query(Review).filter(Review.campaign_id == order_campaign.id).count() == 1


def test_same_order_allowed_in_another_campaign(db, store, verifier, uploader, make_campaign):
    first_campaign = make_campaign()
    second_campaign = make_campaign(name="Autumn Giveaway")

    _complete(db, workflow.start_session(db, store, first_campaign.id), verifier, uploader)
    review = _complete(db, workflow.start_session(db, store, second_campaign.id), verifier, uploader)
    assert review.campaign_id == second_campaign.id


def test_duplicate_race_is_caught_at_persistence(db, store, verifier, uploader, order_campaign):
    # Both customers pass the pre-check before either review is written
    first = workflow.start_session(db, store, order_campaign.id)
    second = workflow.start_session(db, store, order_campaign.id)
    for session in (first, second):
        _step1_order(db, session, verifier)
        _step2(session)

    workflow.submit_review(db, first, uploader)
    with pytest.raises(DuplicateOrder):
        workflow.submit_review(db, second, uploader)

    assert second.step == WorkflowStep.WRITE_REVIEW
    assert second.draft is not None
    assert db.query(Review).filter(Review.order_id == "123-0000000-0000001").count() == 1


def test_retry_reruns_duplicate_check(db, store, verifier, uploader, order_campaign):
    _complete(db, workflow.start_session(db, store, order_campaign.id), verifier, uploader)

    session = workflow.start_session(db, store, order_campaign.id)
    with pytest.raises(VerificationFailed):
        _step1_order(db, session, verifier, order_id="555-0000000-0000000")
    with pytest.raises(DuplicateOrder):
        _step1_order(db, session, verifier)


# Step 1, product branch

def test_scenario_b_product_selection_skips_verification(db, store, verifier, product_campaign):
    session = workflow.start_session(db, store, product_campaign.id)
    product = session.campaign.products[0]

    workflow.submit_product_feedback(
        db, session, verifier,
        product_id=product.id, satisfaction=SatisfactionRating.VERY_SATISFIED, used_over_7_days=False,
    )

    assert session.step == WorkflowStep.CUSTOMER_DETAILS
    assert session.draft.is_verified is False
    assert session.draft.asin == "B000000002"
    assert verifier.calls == []


def test_product_branch_requires_selection(db, store, verifier, product_campaign):
    session = workflow.start_session(db, store, product_campaign.id)
    with pytest.raises(ValidationError) as exc_info:
        workflow.submit_product_feedback(
            db, session, verifier,
            order_id="123-0000000-0000001", satisfaction=SatisfactionRating.NEUTRAL, used_over_7_days=True,
        )
    assert exc_info.value.field == "product_id"
    assert verifier.calls == []


def test_product_branch_rejects_unlinked_product(db, store, verifier, product_campaign):
    session = workflow.start_session(db, store, product_campaign.id)
    with pytest.raises(ValidationError):
        workflow.submit_product_feedback(
            db, session, verifier,
            product_id=uuid.uuid4(), satisfaction=SatisfactionRating.NEUTRAL, used_over_7_days=True,
        )
    assert session.step == WorkflowStep.PRODUCT_FEEDBACK


def test_product_reviews_use_sentinel_and_do_not_collide(db, store, verifier, uploader, product_campaign):
    for name in ("Jane Doe", "John Roe"):
        session = workflow.start_session(db, store, product_campaign.id)
        workflow.submit_product_feedback(
            db, session, verifier,
            product_id=session.campaign.products[0].id,
            satisfaction=SatisfactionRating.NEUTRAL, used_over_7_days=True,
        )
        workflow.submit_customer_details(session, full_name=name, email="someone@example.com")
        review = workflow.submit_review(db, session, uploader)
        assert review.order_id == "N/A"
        assert review.product_id == session.campaign.products[0].id

    assert db.query(Review).filter(Review.campaign_id == product_campaign.id).count() == 2


# Step 2

@pytest.mark.parametrize("full_name,email,field", [
    ("", "jane@example.com", "full_name"),
    ("Jane Doe", None, "email"),
    ("Jane Doe", "not-an-email", "email"),
    ("Jane Doe", "jane@example", "email"),
])
def test_customer_details_validation(db, store, verifier, order_campaign, full_name, email, field):
    session = workflow.start_session(db, store, order_campaign.id)
    _step1_order(db, session, verifier)
    with pytest.raises(ValidationError) as exc_info:
        workflow.submit_customer_details(session, full_name=full_name, email=email)
    assert exc_info.value.field == field
    assert session.step == WorkflowStep.CUSTOMER_DETAILS


def test_customer_details_phone_optional(db, store, verifier, order_campaign):
    session = workflow.start_session(db, store, order_campaign.id)
    _step1_order(db, session, verifier)
    workflow.submit_customer_details(session, full_name=" Jane Doe ", email="jane@example.com", phone="")
    assert session.step == WorkflowStep.WRITE_REVIEW
    assert session.draft.full_name == "Jane Doe"
    assert session.draft.phone is None


# Step 3

def _to_step3(db, store, verifier, campaign, satisfaction):
    session = workflow.start_session(db, store, campaign.id)
    _step1_order(db, session, verifier, satisfaction=satisfaction)
    _step2(session)
    return session


def test_scenario_d_evidence_required_after_external_flow(db, store, verifier, uploader, order_campaign):
    session = _to_step3(db, store, verifier, order_campaign, SatisfactionRating.VERY_SATISFIED)

    link = workflow.open_external_review(session, review_text="Love it!")
    assert link.review_url == "https://www.amazon.com/review/review-your-purchases/?asin=B000000001"
    assert link.copy_text == "Love it!"

    with pytest.raises(ValidationError) as exc_info:
        workflow.submit_review(db, session, uploader)
    assert exc_info.value.field == "evidence"
    assert session.step == WorkflowStep.WRITE_REVIEW
    assert db.query(Review).count() == 0

    workflow.attach_evidence(session, content=PNG, filename="review.png", content_type="image/png")
    review = workflow.submit_review(db, session, uploader)

    assert session.step == WorkflowStep.THANK_YOU
    assert review.review_screenshot_url.endswith("/review.png")
    assert review.review_text == "Love it!"
    assert len(uploader.uploads) == 1
    assert uploader.uploads[0][0] == order_campaign.id


def test_positive_rating_without_external_flow_needs_no_evidence(db, store, verifier, uploader, order_campaign):
    session = _to_step3(db, store, verifier, order_campaign, SatisfactionRating.SOMEWHAT_SATISFIED)
    review = workflow.submit_review(db, session, uploader)
    assert review.review_screenshot_url is None


def test_optional_evidence_is_uploaded_when_attached(db, store, verifier, uploader, order_campaign):
    session = _to_step3(db, store, verifier, order_campaign, SatisfactionRating.VERY_DISSATISFIED)
    workflow.attach_evidence(session, content=PNG, filename="photo.png", content_type="image/png")
    review = workflow.submit_review(db, session, uploader)
    assert review.review_screenshot_url is not None


def test_external_flow_not_offered_for_negative_rating(db, store, verifier, order_campaign):
    session = _to_step3(db, store, verifier, order_campaign, SatisfactionRating.NEUTRAL)
    with pytest.raises(ValidationError):
        workflow.open_external_review(session)
    assert session.external_flow_opened is False


@pytest.mark.parametrize("content,content_type", [
    (b"", "image/png"),
    (b"%PDF-1.4", "application/pdf"),
    (PNG, None),
])
def test_attach_evidence_rejects_non_images(db, store, verifier, order_campaign, content, content_type):
    session = _to_step3(db, store, verifier, order_campaign, SatisfactionRating.VERY_SATISFIED)
    with pytest.raises(ValidationError):
        workflow.attach_evidence(session, content=content, filename="file", content_type=content_type)
    assert session.draft.evidence is None


def test_clear_evidence(db, store, verifier, order_campaign):
    session = _to_step3(db, store, verifier, order_campaign, SatisfactionRating.VERY_SATISFIED)
    workflow.attach_evidence(session, content=PNG, filename="review.png", content_type="image/png")
    workflow.clear_evidence(session)
    assert session.draft.evidence is None


def test_upload_failure_keeps_session_on_step3(db, store, verifier, order_campaign):
    session = _to_step3(db, store, verifier, order_campaign, SatisfactionRating.VERY_SATISFIED)
    workflow.open_external_review(session)
    workflow.attach_evidence(session, content=PNG, filename="review.png", content_type="image/png")

    with pytest.raises(UploadFailed):
        workflow.submit_review(db, session, FakeUploader(fail=True))

    assert session.step == WorkflowStep.WRITE_REVIEW
    assert session.submitting is False
    assert session.draft.evidence is not None
    assert db.query(Review).count() == 0

    review = workflow.submit_review(db, session, FakeUploader())
    assert review.review_screenshot_url is not None


def test_optional_evidence_can_be_dropped_after_upload_failure(db, store, verifier, order_campaign):
    session = _to_step3(db, store, verifier, order_campaign, SatisfactionRating.NEUTRAL)
    workflow.attach_evidence(session, content=PNG, filename="photo.png", content_type="image/png")

    with pytest.raises(UploadFailed):
        workflow.submit_review(db, session, FakeUploader(fail=True))

    workflow.clear_evidence(session)
    review = workflow.submit_review(db, session, FakeUploader(fail=True))
    assert review.review_screenshot_url is None


# Navigation

def test_go_back_single_steps(db, store, verifier, order_campaign):
    session = _to_step3(db, store, verifier, order_campaign, SatisfactionRating.VERY_SATISFIED)
    workflow.open_external_review(session)

    workflow.go_back(session)
    assert session.step == WorkflowStep.CUSTOMER_DETAILS
    assert session.external_flow_opened is False
    workflow.go_back(session)
    assert session.step == WorkflowStep.PRODUCT_FEEDBACK
    with pytest.raises(InvalidStep):
        workflow.go_back(session)

    # Draft survives navigation
    assert session.draft.full_name == "Jane Doe"
    assert session.draft.order_id == "123-0000000-0000001"


def test_resubmitting_step1_after_going_back_reverifies(db, store, verifier, order_campaign):
    session = workflow.start_session(db, store, order_campaign.id)
    _step1_order(db, session, verifier)
    workflow.go_back(session)
    _step1_order(db, session, verifier, order_id="123-0000000-0000002")
    assert session.draft.asin == "B000000003"
    assert len(verifier.calls) == 2


def test_steps_cannot_be_skipped(db, store, verifier, uploader, order_campaign):
    session = workflow.start_session(db, store, order_campaign.id)
    with pytest.raises(InvalidStep):
        _step2(session)
    with pytest.raises(InvalidStep):
        workflow.submit_review(db, session, uploader)


def test_thank_you_is_terminal(db, store, verifier, uploader, order_campaign):
    session = workflow.start_session(db, store, order_campaign.id)
    review = _complete(db, session, verifier, uploader)

    assert session.review_id == review.id
    assert session.draft is None
    with pytest.raises(InvalidStep):
        workflow.go_back(session)
    with pytest.raises(InvalidStep):
        workflow.submit_review(db, session, uploader)
    with pytest.raises(InvalidStep):
        _step1_order(db, session, verifier)


# Abandonment

def test_result_dropped_when_session_discarded_during_verification(db, store, order_campaign):
    session = workflow.start_session(db, store, order_campaign.id)
    verifier = FakeVerifier(
        {"123-0000000-0000001": "B000000001"},
        on_verify=lambda campaign_id, order_id: store.discard(session.id),
    )

    with pytest.raises(SessionNotFound):
        _step1_order(db, session, verifier)
    assert session.step == WorkflowStep.PRODUCT_FEEDBACK
    assert session.draft.asin is None


def test_nothing_written_when_session_discarded_during_upload(db, store, verifier, order_campaign):
    session = _to_step3(db, store, verifier, order_campaign, SatisfactionRating.VERY_SATISFIED)
    workflow.attach_evidence(session, content=PNG, filename="review.png", content_type="image/png")
    uploader = FakeUploader(on_upload=lambda campaign_id, filename: store.discard(session.id))

    with pytest.raises(SessionNotFound):
        workflow.submit_review(db, session, uploader)
    assert db.query(Review).count() == 0


# Concurrent submits

def test_second_submit_rejected_while_first_in_flight(db, store, verifier, product_campaign):
    session = workflow.start_session(db, store, product_campaign.id)
    workflow.submit_product_feedback(
        db, session, verifier,
        product_id=session.campaign.products[0].id,
        satisfaction=SatisfactionRating.VERY_SATISFIED, used_over_7_days=True,
    )
    _step2(session)
    workflow.attach_evidence(session, content=PNG, filename="review.png", content_type="image/png")

    uploading = threading.Event()
    release = threading.Event()

    def slow_upload(campaign_id, filename):
        uploading.set()
        release.wait(5)

    uploader = FakeUploader(on_upload=slow_upload)
    results = []

    def submit():
        try:
            results.append(workflow.submit_review(db, session, uploader))
        except Exception as e:  # surfaced by the assertions below
            results.append(e)

    first = threading.Thread(target=submit)
    first.start()
    assert uploading.wait(5)

    try:
        with pytest.raises(InvalidStep):
            workflow.submit_review(db, session, uploader)
        with pytest.raises(InvalidStep):
            workflow.go_back(session)
    finally:
        release.set()
        first.join(5)

    assert len(results) == 1
    assert isinstance(results[0], Review)
    assert session.step == WorkflowStep.THANK_YOU
    assert session.submitting is False
    assert len(uploader.uploads) == 1
    assert db.query(Review).filter(Review.campaign_id == product_campaign.id).count() == 1


# Marketplace link

@pytest.mark.parametrize("marketplace", [
    "amazon.com", "www.amazon.com", "https://www.amazon.com/", "http://amazon.com", " Amazon.com ",
])
def test_marketplace_review_url_normalizes_domain(marketplace):
    assert marketplace_review_url(marketplace, "B000000001") == (
        "https://www.amazon.com/review/review-your-purchases/?asin=B000000001"
    )
