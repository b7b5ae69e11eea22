"""
Nested EIP-712 Schema Models

Pydantic models for signatures produced and verified by this package. All
classes inherit from the base schema hierarchy in ``schemas.bases``.

Signature classes:
    - ECDSASignature: v/r/s signature for either workflow (use
      ``signature_type`` to distinguish).
    - SignedBlob: A signature blob ready to hand to an account, with the
      digest that was signed.

Result classes:
    - NestedVerificationResult: Outcome of ``verify`` (workflow, signer,
      digest and reconstructed domain metadata).
"""

from typing import Optional, Dict, Any, Literal

from pydantic import Field

from ..schemas.bases import BaseSignature, BaseVerificationResult, CanonicalModel
from .constants import SECP256K1_N, SECP256K1_HALF_N

Workflow = Literal["nested", "personal", "direct"]


class ECDSASignature(BaseSignature):
    """
    secp256k1 ECDSA signature (v, r, s).

    Attributes:
        signature_type: ``"PersonalSign"``, ``"TypedDataSign"`` or ``"Raw"``.
        v: ECDSA recovery ID (27 or 28).
        r: r component as a 0x-prefixed hex string.
        s: s component as a 0x-prefixed hex string.

    Example::

        sig = ECDSASignature(signature_type="PersonalSign", v=27, r="0x" + "a" * 64, s="0x" + "1" * 64)
        sig.to_bytes()        # 65 bytes r ‖ s ‖ v
        sig.to_compact_bytes()  # 64 bytes r ‖ vs (EIP-2098)
    """

    signature_type: Literal["PersonalSign", "TypedDataSign", "Raw"] = Field(
        ..., description="Signing workflow: 'PersonalSign', 'TypedDataSign' or 'Raw'"
    )
    v: int = Field(..., ge=27, le=28, description="ECDSA recovery ID (27 or 28)")
    r: str = Field(..., description="Signature r component (32 bytes, 64-char hex, 0x prefix optional)")
    s: str = Field(..., description="Signature s component (32 bytes, 64-char hex, 0x prefix optional)")

    def validate_format(self) -> bool:
        """
        Validate v/r/s components.

        Checks v is 27 or 28, that r/s are hex strings of at most 64
        characters, and that s lies in the lower half of the curve order.

        Returns:
            True when all components pass.

        Raises:
            ValueError: Descriptive message on the first failed check.
        """
        if self.v not in (27, 28):
            raise ValueError(f"Invalid recovery ID: {self.v}. Must be 27 or 28")

        for name, val in [("r", self.r), ("s", self.s)]:
            hex_str = val.replace("0x", "").replace("0X", "")
            if not hex_str or len(hex_str) > 64:
                raise ValueError(f"Invalid {name}: expected up to 64 hex chars, got {len(hex_str)}")
            try:
                component = int(hex_str, 16)
            except ValueError:
                raise ValueError(f"Invalid {name}: not valid hexadecimal")
            if not 0 < component < SECP256K1_N:
                raise ValueError(f"Invalid {name}: out of range")

        if int(self.s, 16) > SECP256K1_HALF_N:
            raise ValueError("Invalid s: upper half of the curve order")

        return True

    def to_bytes(self) -> bytes:
        """Encode as packed 65-byte ``r ‖ s ‖ v``."""
        self.validate_format()
        return int(self.r, 16).to_bytes(32, "big") + int(self.s, 16).to_bytes(32, "big") + bytes([self.v])

    def to_compact_bytes(self) -> bytes:
        """Encode as EIP-2098 64-byte ``r ‖ vs``."""
        self.validate_format()
        vs = int(self.s, 16) | ((self.v - 27) << 255)
        return int(self.r, 16).to_bytes(32, "big") + vs.to_bytes(32, "big")

    def to_packed_hex(self) -> str:
        """0x-prefixed 132-character hex of :meth:`to_bytes`."""
        return "0x" + self.to_bytes().hex()


class SignedBlob(CanonicalModel):
    """
    A signature blob as handed to an account's ``isValidSignature``.

    Attributes:
        workflow: ``"nested"`` or ``"personal"``.
        signer: Address of the signing key.
        claim_hash: Hash the account will be asked to validate (hex).
        digest: Digest the key actually signed (hex).
        signature: The raw ECDSA signature.
        blob: Full blob (hex); equals the packed signature for ``personal``.
    """

    workflow: Workflow = Field(..., description="Signing workflow")
    signer: str = Field(..., description="Signer address")
    claim_hash: str = Field(..., description="Hash presented to the account (hex)")
    digest: str = Field(..., description="Digest signed by the key (hex)")
    signature: ECDSASignature = Field(..., description="Raw ECDSA signature")
    blob: str = Field(..., description="Signature blob (hex)")

    def blob_bytes(self) -> bytes:
        return bytes.fromhex(self.blob[2:] if self.blob.startswith("0x") else self.blob)


class NestedVerificationResult(BaseVerificationResult):
    """
    Outcome of nested EIP-712 signature verification.

    ``is_valid`` means a signer was recovered over the digest of the
    selected workflow. Comparing ``signer`` to the account owner is the
    caller's job (see ``SmartAccount``).

    Attributes:
        verification_type: Always ``"erc7739"``.
        workflow: Workflow used for recovery, ``None`` if rejected before one was chosen.
        signer: Recovered checksum address, ``None`` on failure.
        claim_hash: Hash presented by the caller (hex).
        digest: Digest passed to recovery (hex).
        contents_name: Contents name of a nested signature.
        domain: Reconstructed ERC-5267 domain of the account.
    """

    verification_type: Literal["erc7739"] = Field(default="erc7739", description="Verification type identifier")
    workflow: Optional[Workflow] = Field(None, description="Workflow selected for recovery")
    signer: Optional[str] = Field(None, description="Recovered signer address")
    claim_hash: Optional[str] = Field(None, description="Claim hash (hex)")
    digest: Optional[str] = Field(None, description="Digest handed to recovery (hex)")
    contents_name: Optional[str] = Field(None, description="Contents name of a nested signature")
    domain: Optional[Dict[str, Any]] = Field(None, description="Reconstructed account domain")
