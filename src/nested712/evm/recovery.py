"""
ECDSA signer recovery.

Wraps ``eth_keys`` recovery with the acceptance rules of on-chain
verifiers: only 65-byte ``r ‖ s ‖ v`` and 64-byte EIP-2098 ``r ‖ vs``
signatures, ``v`` of 27 or 28, non-zero ``r``/``s`` below the curve order,
``s`` in the lower half of the order, and never the zero address.
"""

import logging
from typing import Tuple

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError

from ..engine.exceptions import RecoveryFailureError
from .constants import SECP256K1_N, SECP256K1_HALF_N, ZERO_ADDRESS

logger = logging.getLogger(__name__)

_S_MASK = (1 << 255) - 1


def split_signature(signature: bytes) -> Tuple[int, int, int]:
    """
    Split a raw signature into ``(v, r, s)``.

    Args:
        signature: 65-byte ``r ‖ s ‖ v`` or 64-byte ``r ‖ vs``.

    Returns:
        ``(v, r, s)`` with ``v`` in ``{27, 28}``.

    Raises:
        RecoveryFailureError: On bad length or out-of-range components.
    """
    signature = bytes(signature)
    if len(signature) == 65:
        r = int.from_bytes(signature[:32], "big")
        s = int.from_bytes(signature[32:64], "big")
        v = signature[64]
    elif len(signature) == 64:
        r = int.from_bytes(signature[:32], "big")
        vs = int.from_bytes(signature[32:], "big")
        s = vs & _S_MASK
        v = 27 + (vs >> 255)
    else:
        raise RecoveryFailureError(f"Invalid signature length: {len(signature)}")

    if v not in (27, 28):
        raise RecoveryFailureError(f"Invalid recovery ID: {v}. Must be 27 or 28")
    if not 0 < r < SECP256K1_N:
        raise RecoveryFailureError("Signature r is out of range")
    if not 0 < s < SECP256K1_N:
        raise RecoveryFailureError("Signature s is out of range")
    if s > SECP256K1_HALF_N:
        raise RecoveryFailureError("Signature s is in the upper half order (malleable)")

    return v, r, s


def recover_signer(digest: bytes, signature: bytes) -> str:
    """
    Recover the address that signed ``digest``.

    Args:
        digest: 32-byte digest that was signed.
        signature: Raw signature bytes.

    Returns:
        Checksum address of the signer.

    Raises:
        RecoveryFailureError: If the signature is rejected or recovery fails.
    """
    v, r, s = split_signature(signature)
    try:
        public_key = keys.Signature(vrs=(v - 27, r, s)).recover_public_key_from_msg_hash(digest)
        recovered = public_key.to_checksum_address()
    except (BadSignature, ValidationError) as exc:
        logger.debug("ECDSA recovery raised: %s", exc)
        raise RecoveryFailureError(f"Signature recovery failed: {exc}") from exc

    if int(recovered, 16) == 0:
        raise RecoveryFailureError(f"Signature recovered {ZERO_ADDRESS}")
    return recovered
