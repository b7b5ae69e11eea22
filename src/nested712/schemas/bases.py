"""
Base Schema Models for nested712

This module defines the fundamental base classes that all other schema
models inherit from. It provides the foundation for type safety,
validation, and consistent serialization of verification outcomes.

Core Classes:
    - CanonicalModel: RFC8785-compliant Pydantic base model for cryptographic operations
    - BaseSignature: Abstract signature component model
    - VerificationStatus: Enumeration of verification outcomes
    - BaseVerificationResult: Abstract verification result model

Dependencies:
    - pydantic: For data validation and serialization
"""

import json
from typing import Optional, Dict, Any
from abc import ABC
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CanonicalModel(BaseModel):
    """
    RFC8785-compliant Pydantic base model with canonical JSON serialization.

    This model ensures consistent, deterministic JSON representation suitable
    for logging, fixtures and cross-process comparison of results.

    Features:
        - Automatic conversion of Pydantic objects and enums to standard types
        - Deterministic key sorting in JSON output
        - No extra whitespace

    Example:
        class MyModel(CanonicalModel):
            name: str
            value: int

        model = MyModel(name="test", value=123)
        canonical_json = model.to_canonical_json()  # '{"name":"test","value":123}'
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_canonical_json(self) -> str:
        """
        Convert model to RFC8785-compliant canonical JSON string.

        ``model_dump(mode="json")`` converts Pydantic objects, enums and
        datetimes to standard Python types; ``json.dumps`` with sorted keys
        and compact separators produces the canonical form.

        Returns:
            str: JSON string with sorted keys and no extra whitespace.
        """
        data = self.model_dump(mode="json")
        return json.dumps(
            data,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model to dictionary representation.

        Returns:
            Dict[str, Any]: Dictionary with all model fields.
        """
        return self.model_dump()


class BaseSignature(CanonicalModel, ABC):
    """
    Abstract base class for signature components.

    Attributes:
        signature_type: The signing workflow that produced the signature
            (e.g. "PersonalSign", "TypedDataSign")
        created_at: Timestamp when the signature was created
    """

    signature_type: str = Field(..., description="Signing workflow (e.g., PersonalSign, TypedDataSign)")
    created_at: datetime = Field(default_factory=datetime.now, description="Signature creation timestamp")

    def validate_format(self) -> bool:
        """
        Validate the signature components.

        Returns:
            bool: True if signature format is valid.

        Raises:
            ValueError: If signature format is invalid with descriptive message.
        """
        pass


class VerificationStatus(str, Enum):
    """
    Enumeration of possible verification result statuses.

    Attributes:
        SUCCESS: A signer was recovered over the reconstructed digest
        INVALID_SIGNATURE: Raw signature rejected or claim hash malformed
        INVALID_TYPE_DESCRIPTOR: Nested contents type failed sanitization
        SIGNER_MISMATCH: Recovered signer differs from the expected owner
    """
    SUCCESS = "success"
    INVALID_SIGNATURE = "invalid_signature"
    INVALID_TYPE_DESCRIPTOR = "invalid_type_descriptor"
    SIGNER_MISMATCH = "signer_mismatch"


class BaseVerificationResult(CanonicalModel, ABC):
    """
    Abstract base class for signature verification results.

    Attributes:
        verification_type: Type of verification (e.g., "erc7739")
        status: Verification result status (VerificationStatus enum)
        is_valid: Boolean indicating if verification was successful
        message: Human-readable status message
        error_details: Detailed error information if verification failed
        verified_at: Timestamp when verification was performed

    Methods:
        is_success: Check if verification was successful
        get_error_message: Get formatted error message
    """

    verification_type: str = Field(..., description="Type of verification (e.g., erc7739)")
    status: VerificationStatus = Field(..., description="Verification result status")
    is_valid: bool = Field(..., description="Whether the signature is valid")
    message: str = Field(..., description="Human-readable status message")
    error_details: Optional[Dict[str, Any]] = Field(None, description="Detailed error information")
    verified_at: datetime = Field(default_factory=datetime.now, description="Verification timestamp")

    def is_success(self) -> bool:
        """
        Check if verification was successful.

        Returns:
            bool: True if verification was successful, False otherwise.

        Example:
            result = verify(domain, claim_hash, blob)
            if result.is_success():
                # compare result.signer with the account owner
        """
        return self.is_valid and self.status == VerificationStatus.SUCCESS

    def get_error_message(self) -> Optional[str]:
        """
        Get formatted error message from verification result.

        Returns:
            Optional[str]: Error message if verification failed, None if successful.
        """
        if self.is_success():
            return None

        error_msg = f"Verification failed: {self.message}"
        if self.error_details:
            details_str = json.dumps(self.error_details, indent=2, default=str)
            error_msg += f"\nDetails: {details_str}"
        return error_msg
