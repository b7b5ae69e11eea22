"""
Smart account host.

``SmartAccount`` plays the role of the contract that owns a domain
descriptor and exposes ERC-1271 ``isValidSignature``. It delegates
workflow selection and recovery to :func:`verify` and adds the parts that
belong to the host rather than the verifier: the owner comparison, the
nested-workflow support probe and an optional policy for skipping the
rehash of the claim hash.
"""

import logging
from typing import Callable, Optional

from web3 import Web3

from ..engine.exceptions import ConfigurationError, SignatureVerificationError
from ..schemas.bases import VerificationStatus
from ..schemas.versions import CURRENT_REVISION
from .constants import (
    ERC1271_MAGIC_VALUE,
    ERC1271_INVALID_VALUE,
    HASH_LENGTH,
    NESTED_SUPPORT_PROBE_HASH,
)
from .recovery import recover_signer
from .schemas import NestedVerificationResult
from .standards import DomainDescriptor
from .utils import BytesLike, to_raw_bytes, to_0x_hex
from .verifies import verify

logger = logging.getLogger(__name__)

#: Host policy deciding whether ``claim_hash`` may be checked without rehashing.
SkipRehashPolicy = Callable[[bytes, bytes], bool]


class SmartAccount:
    """
    Single-owner account validating signatures through the nested workflow.

    Args:
        owner:       Address of the ECDSA key controlling the account.
        domain:      The account's EIP-712 domain descriptor.
        skip_rehash: Optional host policy called with ``(claim_hash,
                     signature)``. When it returns ``True`` the claim hash is
                     recovered as-is, without any wrapping. Typical policies
                     are "off-chain simulation" or "hash already commits to
                     this account's address".

    Raises:
        ConfigurationError: If ``owner`` is not a valid address.

    Example::

        account = SmartAccount(owner, DomainDescriptor.from_env())
        account.is_valid_signature(claim_hash, blob) == ERC1271_MAGIC_VALUE
    """

    def __init__(
        self,
        owner: str,
        domain: DomainDescriptor,
        *,
        skip_rehash: Optional[SkipRehashPolicy] = None,
    ):
        if not isinstance(owner, str) or not Web3.is_address(owner):
            raise ConfigurationError(f"owner is not a valid address: {owner!r}")
        self.owner = Web3.to_checksum_address(owner)
        self.domain = domain
        self.skip_rehash = skip_rehash

    @property
    def address(self) -> str:
        return self.domain.verifying_contract

    def eip712_domain(self):
        """ERC-5267 ``eip712Domain()`` of the account."""
        return self.domain.eip712_domain()

    def supports_nested_workflow(self, claim_hash: BytesLike, signature: BytesLike) -> Optional[bytes]:
        """
        Answer the nested-workflow support probe.

        Returns:
            The 4-byte revision identifier when ``claim_hash`` is the probe
            hash and ``signature`` is empty, else ``None``.
        """
        if len(to_raw_bytes(signature)) == 0 and to_raw_bytes(claim_hash) == NESTED_SUPPORT_PROBE_HASH:
            return CURRENT_REVISION.identifier
        return None

    def validate(self, claim_hash: BytesLike, signature: BytesLike) -> NestedVerificationResult:
        """
        Verify ``signature`` and compare the recovered signer with the owner.

        Returns:
            The verification result; a signer other than the owner is
            reported with status ``SIGNER_MISMATCH``. Unreadable input is
            reported as ``INVALID_SIGNATURE``, as :func:`verify` does.
        """
        try:
            claim = to_raw_bytes(claim_hash)
            blob = to_raw_bytes(signature)
        except (TypeError, ValueError):
            return verify(self.domain, claim_hash, signature)

        if self.skip_rehash is not None and len(claim) == HASH_LENGTH and self.skip_rehash(claim, blob):
            logger.debug("Host policy skipped rehashing for %s", to_0x_hex(claim))
            result = self._verify_direct(claim, blob)
        else:
            result = verify(self.domain, claim, blob)

        if result.is_success() and result.signer != self.owner:
            return result.model_copy(
                update={
                    "status": VerificationStatus.SIGNER_MISMATCH,
                    "is_valid": False,
                    "message": "Recovered signer is not the account owner.",
                    "error_details": {"expected": self.owner, "recovered": result.signer},
                }
            )
        return result

    def is_valid_signature(self, claim_hash: BytesLike, signature: BytesLike) -> bytes:
        """
        ERC-1271 ``isValidSignature(bytes32, bytes) returns (bytes4)``.

        Returns:
            ``0x1626ba7e`` for a valid owner signature, the support
            identifier for the nested-workflow probe, ``0xffffffff`` otherwise.
        """
        try:
            support = self.supports_nested_workflow(claim_hash, signature)
        except (TypeError, ValueError):
            return ERC1271_INVALID_VALUE
        if support is not None:
            return support

        result = self.validate(claim_hash, signature)
        return ERC1271_MAGIC_VALUE if result.is_success() else ERC1271_INVALID_VALUE

    def _verify_direct(self, claim: bytes, blob: bytes) -> NestedVerificationResult:
        common = dict(
            workflow="direct",
            claim_hash=to_0x_hex(claim),
            digest=to_0x_hex(claim),
            domain=self.domain.to_dict(),
        )
        try:
            signer = recover_signer(claim, blob)
        except SignatureVerificationError as exc:
            return NestedVerificationResult(
                status=VerificationStatus.INVALID_SIGNATURE,
                is_valid=False,
                message=f"Signature invalid: {exc}",
                error_details={"error": str(exc)},
                **common,
            )
        return NestedVerificationResult(
            status=VerificationStatus.SUCCESS,
            is_valid=True,
            message="Signer recovered over the unwrapped claim hash.",
            signer=signer,
            **common,
        )
