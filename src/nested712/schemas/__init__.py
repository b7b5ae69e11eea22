from .bases import CanonicalModel, BaseSignature, VerificationStatus, BaseVerificationResult
from .versions import SchemeRevision, CURRENT_REVISION

__all__ = [
    "CanonicalModel",
    "BaseSignature",
    "VerificationStatus",
    "BaseVerificationResult",
    "SchemeRevision",
    "CURRENT_REVISION",
]
