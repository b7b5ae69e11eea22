"""
On-chain Account Queries

Read-only helpers talking to a deployed smart account over JSON-RPC:

query_account_domain
    Read the account's ERC-5267 ``eip712Domain()`` and return it as a
    ``DomainDescriptor``, ready for :func:`verify` or ``SmartAccount``.

query_is_valid_signature
    Call the account's ERC-1271 ``isValidSignature`` and return the raw
    4-byte answer.

query_nested_support
    Send the nested-workflow support probe and report whether the account
    answers with the supported revision.

All helpers take an ``AsyncWeb3`` instance; :func:`get_web3` builds one
from ``NESTED712_RPC_URL``.
"""

import logging
from typing import Optional

from web3 import AsyncWeb3
from web3.exceptions import Web3Exception

from ..engine.exceptions import ConfigurationError
from ..schemas.versions import CURRENT_REVISION
from .constants import ERC1271_INVALID_VALUE, NESTED_SUPPORT_PROBE_HASH, get_rpc_url
from .standards import DomainDescriptor, ERC1271ABI, ERC5267ABI
from .utils import BytesLike, to_raw_bytes

logger = logging.getLogger(__name__)


def get_web3(rpc_url: Optional[str] = None) -> AsyncWeb3:
    """
    Create an ``AsyncWeb3`` client.

    Args:
        rpc_url: Endpoint; falls back to ``NESTED712_RPC_URL``.

    Raises:
        ConfigurationError: If no endpoint is configured.
    """
    url = rpc_url or get_rpc_url()
    if not url:
        raise ConfigurationError("No RPC endpoint configured (set NESTED712_RPC_URL)")
    return AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(url.strip(), request_kwargs={"timeout": 10}))


async def query_account_domain(w3: AsyncWeb3, account: str) -> DomainDescriptor:
    """
    Read a deployed account's domain descriptor.

    Args:
        w3:      AsyncWeb3 instance connected to the account's chain.
        account: Account contract address.

    Returns:
        ``DomainDescriptor`` built from ``eip712Domain()``.

    Raises:
        ConfigurationError: If the call fails or returns an unusable domain.
    """
    checksum_account = w3.to_checksum_address(account)
    contract = w3.eth.contract(address=checksum_account, abi=ERC5267ABI().to_list())
    try:
        result = await contract.functions.eip712Domain().call()
    except Web3Exception as exc:
        raise ConfigurationError(f"eip712Domain() call failed for {checksum_account}: {exc}")

    domain = DomainDescriptor.from_eip712_domain(result)
    if domain.verifying_contract != checksum_account:
        raise ConfigurationError(
            f"{checksum_account} reports verifyingContract {domain.verifying_contract}"
        )
    return domain


async def query_is_valid_signature(
    w3: AsyncWeb3,
    account: str,
    claim_hash: BytesLike,
    signature: BytesLike,
) -> bytes:
    """
    Call ``isValidSignature(claim_hash, signature)`` on a deployed account.

    Returns:
        The 4-byte answer; ``0xffffffff`` when the call reverts or fails.
    """
    checksum_account = w3.to_checksum_address(account)
    contract = w3.eth.contract(address=checksum_account, abi=ERC1271ABI().to_list())
    try:
        result = await contract.functions.isValidSignature(
            to_raw_bytes(claim_hash), to_raw_bytes(signature)
        ).call()
    except Web3Exception as exc:
        logger.debug("isValidSignature call on %s failed: %s", checksum_account, exc)
        return ERC1271_INVALID_VALUE
    return bytes(result)


async def query_nested_support(w3: AsyncWeb3, account: str) -> bool:
    """``True`` when the account answers the support probe with the current revision."""
    answer = await query_is_valid_signature(w3, account, NESTED_SUPPORT_PROBE_HASH, b"")
    return answer == CURRENT_REVISION.identifier
