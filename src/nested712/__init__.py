from .evm import (
    DomainDescriptor,
    SmartAccount,
    NestedVerificationResult,
    verify,
)
from .schemas import VerificationStatus

__all__ = [
    "DomainDescriptor",
    "SmartAccount",
    "NestedVerificationResult",
    "verify",
    "VerificationStatus",
]
