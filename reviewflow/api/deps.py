from functools import lru_cache

from reviewflow.services.draft_store import DraftStore
from reviewflow.services.evidence_storage import EvidenceUploader
from reviewflow.services.order_verification import OrderVerifier


@lru_cache()
def get_draft_store() -> DraftStore:
    """Process-wide session store; review sessions live in memory only."""
    return DraftStore()


def get_order_verifier() -> OrderVerifier:
    return OrderVerifier()


def get_evidence_uploader() -> EvidenceUploader:
    return EvidenceUploader()
