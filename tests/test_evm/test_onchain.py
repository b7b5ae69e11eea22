"""
On-chain Account Query Tests

Exercises the JSON-RPC helpers against a mocked ``AsyncWeb3`` client; no
network access is needed.
"""

from unittest.mock import AsyncMock, Mock, patch

import pytest
from web3 import Web3
from web3.exceptions import Web3Exception

from nested712.engine.exceptions import ConfigurationError
from nested712.evm.constants import ERC1271_INVALID_VALUE, ERC1271_MAGIC_VALUE, NESTED_SUPPORT_PROBE_HASH
from nested712.evm.onchain import (
    get_web3,
    query_account_domain,
    query_is_valid_signature,
    query_nested_support,
)

from test_mocks import MOCK_ACCOUNT_ADDRESS, MOCK_OTHER_ACCOUNT_ADDRESS, MOCK_SALT, create_account_domain


def make_web3(call: AsyncMock, function_name: str) -> Mock:
    """Mock ``AsyncWeb3`` whose contract function ``function_name`` resolves via ``call``."""
    w3 = Mock()
    w3.to_checksum_address = Mock(side_effect=Web3.to_checksum_address)
    contract = Mock()
    getattr(contract.functions, function_name).return_value.call = call
    w3.eth.contract.return_value = contract
    return w3


class TestGetWeb3:
    def test_missing_endpoint(self, monkeypatch):
        monkeypatch.delenv("NESTED712_RPC_URL", raising=False)
        with pytest.raises(ConfigurationError, match="NESTED712_RPC_URL"):
            get_web3()

    def test_endpoint_from_environment(self, monkeypatch):
        monkeypatch.setenv("NESTED712_RPC_URL", "http://localhost:8545")
        with patch("nested712.evm.onchain.AsyncWeb3") as mock_web3:
            get_web3()
        mock_web3.AsyncHTTPProvider.assert_called_once_with(
            "http://localhost:8545", request_kwargs={"timeout": 10}
        )


class TestQueryAccountDomain:
    """ERC-5267 domain lookup."""

    @pytest.mark.asyncio
    async def test_builds_descriptor(self):
        expected = create_account_domain(salt=MOCK_SALT, extensions=(7739,))
        w3 = make_web3(AsyncMock(return_value=expected.eip712_domain()), "eip712Domain")

        domain = await query_account_domain(w3, MOCK_ACCOUNT_ADDRESS.lower())

        assert domain == expected
        w3.eth.contract.assert_called_once()
        assert w3.eth.contract.call_args.kwargs["address"] == MOCK_ACCOUNT_ADDRESS

    @pytest.mark.asyncio
    async def test_rejects_foreign_verifying_contract(self):
        other = create_account_domain(verifying_contract=MOCK_OTHER_ACCOUNT_ADDRESS)
        w3 = make_web3(AsyncMock(return_value=other.eip712_domain()), "eip712Domain")

        with pytest.raises(ConfigurationError, match="reports verifyingContract"):
            await query_account_domain(w3, MOCK_ACCOUNT_ADDRESS)

    @pytest.mark.asyncio
    async def test_rejects_inconsistent_fields(self):
        reported = list(create_account_domain().eip712_domain())
        reported[0] = b"\x1f"
        w3 = make_web3(AsyncMock(return_value=tuple(reported)), "eip712Domain")

        with pytest.raises(ConfigurationError, match="fields"):
            await query_account_domain(w3, MOCK_ACCOUNT_ADDRESS)

    @pytest.mark.asyncio
    async def test_call_failure(self):
        w3 = make_web3(AsyncMock(side_effect=Web3Exception("execution reverted")), "eip712Domain")

        with pytest.raises(ConfigurationError, match="eip712Domain"):
            await query_account_domain(w3, MOCK_ACCOUNT_ADDRESS)


class TestQueryIsValidSignature:
    """ERC-1271 calls."""

    @pytest.mark.asyncio
    async def test_returns_answer(self):
        call = AsyncMock(return_value=ERC1271_MAGIC_VALUE)
        w3 = make_web3(call, "isValidSignature")

        answer = await query_is_valid_signature(w3, MOCK_ACCOUNT_ADDRESS, "0x" + "11" * 32, "0xabcd")

        assert answer == ERC1271_MAGIC_VALUE
        w3.eth.contract.return_value.functions.isValidSignature.assert_called_once_with(
            b"\x11" * 32, b"\xab\xcd"
        )

    @pytest.mark.asyncio
    async def test_revert_is_invalid(self):
        w3 = make_web3(AsyncMock(side_effect=Web3Exception("execution reverted")), "isValidSignature")
        answer = await query_is_valid_signature(w3, MOCK_ACCOUNT_ADDRESS, b"\x11" * 32, b"")
        assert answer == ERC1271_INVALID_VALUE


class TestQueryNestedSupport:
    @pytest.mark.asyncio
    async def test_supported(self):
        w3 = make_web3(AsyncMock(return_value=bytes.fromhex("77390001")), "isValidSignature")

        assert await query_nested_support(w3, MOCK_ACCOUNT_ADDRESS) is True
        w3.eth.contract.return_value.functions.isValidSignature.assert_called_once_with(
            NESTED_SUPPORT_PROBE_HASH, b""
        )

    @pytest.mark.asyncio
    async def test_unsupported(self):
        w3 = make_web3(AsyncMock(return_value=ERC1271_INVALID_VALUE), "isValidSignature")
        assert await query_nested_support(w3, MOCK_ACCOUNT_ADDRESS) is False
