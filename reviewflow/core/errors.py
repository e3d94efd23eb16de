"""
Error taxonomy for the review collection workflow.

Services raise these; the API layer turns them into JSON responses
(see reviewflow.main). Everything except NotFound is recoverable on the
same step, and none of them discard the draft.
"""
from typing import Optional


class ReviewFlowError(Exception):
    code = "review_flow_error"
    status_code = 400
    default_message = "Something went wrong with your review."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ReviewFlowError):
    """A required field is missing or malformed."""
    code = "validation_error"
    status_code = 422
    default_message = "Please fill in all required fields."

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class DuplicateOrder(ReviewFlowError):
    code = "duplicate_order"
    status_code = 409
    default_message = "This Order ID has already been used for this campaign."


class VerificationFailed(ReviewFlowError):
    code = "verification_failed"
    status_code = 400
    default_message = "Unable to verify your order. Please check the Order ID and try again."


class UploadFailed(ReviewFlowError):
    code = "upload_failed"
    status_code = 502
    default_message = "Screenshot upload failed. Please try again."


class PersistenceError(ReviewFlowError):
    code = "persistence_error"
    status_code = 503
    default_message = "We could not save your review. Please try again."


class NotFound(ReviewFlowError):
    code = "not_found"
    status_code = 404
    default_message = "This campaign doesn't exist or is no longer active."


class SessionNotFound(NotFound):
    code = "session_not_found"
    default_message = "This review session has expired. Please scan the QR code again."


class InvalidStep(ReviewFlowError):
    """The requested action does not belong to the session's current step."""
    code = "invalid_step"
    status_code = 409
    default_message = "This action is not available at the current step."
