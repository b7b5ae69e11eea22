"""
Nested EIP-712 Signature Verification

Off-chain rendition of an account's ``isValidSignature`` rehashing step.
Given the account's domain, a 32-byte claim hash and a signature blob,
``verify`` decides which workflow produced the signature, rebuilds the
digest the key actually signed and recovers the signer.

Workflows
---------
nested (``TypedDataSign``)
    The blob carries ``APP_DOMAIN_SEPARATOR``, ``contents`` and
    ``contentsType``. It is selected when
    ``keccak(0x1901 ‖ APP_DOMAIN_SEPARATOR ‖ contents) == claim_hash``; the
    key must have signed the ``TypedDataSign`` digest that binds those
    contents to this account.

personal (``PersonalSign``)
    Fallback for everything else: the key must have signed the
    ``PersonalSign`` digest of ``claim_hash`` under the account's domain.

A nested blob whose contents type fails sanitization is rejected without
falling back, so an attacker cannot pick the canonicalization applied to
a given raw signature.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from eth_account.messages import SignableMessage

from ..engine.exceptions import (
    DigestMismatchError,
    InvalidTypeDescriptorError,
    SignatureVerificationError,
)
from ..schemas.bases import VerificationStatus
from .codec import DecodedSignature, NestedSignature, decode_signature
from .constants import HASH_LENGTH
from .contents import parse_contents_name
from .hashing import (
    account_domain_separator,
    app_typed_data_hash,
    hash_signable,
    nested_signable,
    personal_signable,
)
from .recovery import recover_signer
from .schemas import NestedVerificationResult
from .standards import DomainDescriptor
from .utils import BytesLike, to_raw_bytes, to_0x_hex

logger = logging.getLogger(__name__)


def _check_nested_claim(nested: NestedSignature, claim_hash: bytes) -> None:
    """
    Raise ``DigestMismatchError`` unless the nested fields rebuild ``claim_hash``.
    """
    reconstructed = app_typed_data_hash(nested.app_domain_separator, nested.contents)
    if reconstructed != claim_hash:
        raise DigestMismatchError(
            "Nested fields do not reproduce the claim hash",
            expected=claim_hash,
            reconstructed=reconstructed,
        )


def _select_workflow(
    domain: DomainDescriptor,
    claim: bytes,
    blob: bytes,
    decoded: DecodedSignature,
) -> Tuple[str, SignableMessage, bytes]:
    """
    Pick the workflow for an already sanitized blob.

    Returns:
        ``(workflow, signable, raw_signature)``.
    """
    if isinstance(decoded, NestedSignature):
        try:
            _check_nested_claim(decoded, claim)
        except DigestMismatchError as exc:
            logger.debug(
                "Nested fields rebuild %s, claim is %s; falling back to personal workflow",
                to_0x_hex(exc.reconstructed),
                to_0x_hex(exc.expected),
            )
        else:
            signable = nested_signable(
                decoded.app_domain_separator,
                decoded.contents,
                decoded.contents_type,
                domain,
            )
            return "nested", signable, decoded.raw_signature
    return "personal", personal_signable(account_domain_separator(domain), claim), blob


def verify(
    domain: DomainDescriptor,
    claim_hash: BytesLike,
    signature: BytesLike,
) -> NestedVerificationResult:
    """
    Verify a signature blob presented to an account for ``claim_hash``.

    Steps, returning on the first failure:

    1. **Decode** -- split the blob; a nested blob has its contents type
       sanitized, and a malformed one is rejected outright.
    2. **Select** -- nested fields that rebuild ``claim_hash`` select the
       nested workflow; anything else falls back to personal.
    3. **Recover** -- recover the signer over the selected digest.

    Attacker-controlled input never raises; every failure is reported as
    a result with ``is_valid=False``.

    Args:
        domain:     The verifying account's domain descriptor.
        claim_hash: 32-byte hash presented to the account (bytes or 0x-hex).
        signature:  Signature blob (bytes or 0x-hex).

    Returns:
        ``NestedVerificationResult``; ``is_success()`` means a signer was
        recovered. The caller compares ``result.signer`` with the owner.

    Example::

        result = verify(domain, claim_hash, blob)
        if result.is_success() and result.signer == owner:
            ...
    """
    domain_metadata = domain.to_dict()

    def _fail(
        status: VerificationStatus,
        message: str,
        error_details: Optional[Dict[str, Any]] = None,
        **extra: Any,
    ) -> NestedVerificationResult:
        logger.debug("Signature rejected: %s", message)
        return NestedVerificationResult(
            status=status,
            is_valid=False,
            message=message,
            error_details=error_details,
            domain=domain_metadata,
            **extra,
        )

    # ------------------------------------------------------------------
    # 0. Input shape
    # ------------------------------------------------------------------
    try:
        claim = to_raw_bytes(claim_hash)
        blob = to_raw_bytes(signature)
    except (TypeError, ValueError) as exc:
        return _fail(
            VerificationStatus.INVALID_SIGNATURE,
            f"Unreadable input: {exc}",
            {"error": str(exc)},
        )

    if len(claim) != HASH_LENGTH:
        return _fail(
            VerificationStatus.INVALID_SIGNATURE,
            f"Claim hash must be {HASH_LENGTH} bytes, got {len(claim)}.",
            {"claim_hash_length": len(claim)},
        )

    claim_hex = to_0x_hex(claim)

    # ------------------------------------------------------------------
    # 1. Decode and sanitize
    # ------------------------------------------------------------------
    decoded = decode_signature(blob)
    contents_name = None
    if isinstance(decoded, NestedSignature):
        try:
            contents_name = parse_contents_name(decoded.contents_type)
        except InvalidTypeDescriptorError as exc:
            return _fail(
                VerificationStatus.INVALID_TYPE_DESCRIPTOR,
                f"Invalid contents type: {exc}",
                {
                    "contents_type": exc.contents_type.encode("utf-8", "surrogateescape").decode(
                        "utf-8", "backslashreplace"
                    )
                },
                claim_hash=claim_hex,
            )

    # ------------------------------------------------------------------
    # 2. Workflow selection
    # ------------------------------------------------------------------
    workflow, signable, raw_signature = _select_workflow(domain, claim, blob, decoded)
    if workflow == "personal":
        contents_name = None

    digest = hash_signable(signable)
    digest_hex = to_0x_hex(digest)
    logger.debug("Using %s workflow for claim %s (digest %s)", workflow, claim_hex, digest_hex)

    # ------------------------------------------------------------------
    # 3. Recovery
    # ------------------------------------------------------------------
    try:
        signer = recover_signer(digest, raw_signature)
    except SignatureVerificationError as exc:
        return _fail(
            VerificationStatus.INVALID_SIGNATURE,
            f"Signature invalid: {exc}",
            {"error": str(exc)},
            workflow=workflow,
            claim_hash=claim_hex,
            digest=digest_hex,
            contents_name=contents_name,
        )

    return NestedVerificationResult(
        status=VerificationStatus.SUCCESS,
        is_valid=True,
        message=f"Signer recovered via {workflow} workflow.",
        workflow=workflow,
        signer=signer,
        claim_hash=claim_hex,
        digest=digest_hex,
        contents_name=contents_name,
        domain=domain_metadata,
    )
