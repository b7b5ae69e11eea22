"""
Nested EIP-712 Constants and Environment Configuration

Fixed type strings, typehashes, prefixes and magic values used by the
nested typed-data workflow, plus environment-aware getters for the
account's domain descriptor and logging level.
"""

import os
import logging
from typing import List, Optional

import dotenv
from eth_utils import keccak

dotenv.load_dotenv()

# ---------------------------------------------------------------------------
# EIP-191 / EIP-712 framing
# ---------------------------------------------------------------------------

#: Two-byte prefix of every EIP-712 signing payload.
EIP712_PREFIX: bytes = b"\x19\x01"

#: Length of every digest handled here.
HASH_LENGTH: int = 32

#: Trailing big-endian length tag of a nested signature blob.
CONTENTS_TYPE_LENGTH_SIZE: int = 2

#: Smallest blob that can carry nested fields (two hashes plus the length tag).
MIN_NESTED_BLOB_LENGTH: int = 2 * HASH_LENGTH + CONTENTS_TYPE_LENGTH_SIZE

# ---------------------------------------------------------------------------
# Type strings and typehashes
# ---------------------------------------------------------------------------

PERSONAL_SIGN_TYPE: str = "PersonalSign(bytes prefixed)"

#: ``keccak256("PersonalSign(bytes prefixed)")``
PERSONAL_SIGN_TYPEHASH: bytes = keccak(text=PERSONAL_SIGN_TYPE)

TYPED_DATA_SIGN_PREFIX: str = "TypedDataSign("

#: Fields appended after ``{contentsName} contents`` in the ``TypedDataSign`` type.
TYPED_DATA_SIGN_FIELDS: str = (
    " contents,bytes1 fields,string name,string version,uint256 chainId,"
    "address verifyingContract,bytes32 salt,uint256[] extensions)"
)

EIP712_DOMAIN_TYPE: str = (
    "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)

EIP712_DOMAIN_WITH_SALT_TYPE: str = (
    "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract,bytes32 salt)"
)

# ---------------------------------------------------------------------------
# ERC-5267 domain field bitmap
# ---------------------------------------------------------------------------

FIELD_NAME: int = 0x01
FIELD_VERSION: int = 0x02
FIELD_CHAIN_ID: int = 0x04
FIELD_VERIFYING_CONTRACT: int = 0x08
FIELD_SALT: int = 0x10

# ---------------------------------------------------------------------------
# ERC-1271 / ERC-7739 constants
# ---------------------------------------------------------------------------

#: Magic value returned by a valid ERC-1271 ``isValidSignature`` call.
ERC1271_MAGIC_VALUE: bytes = b"\x16\x26\xba\x7e"

#: Value returned by ``isValidSignature`` when the signature is rejected.
ERC1271_INVALID_VALUE: bytes = b"\xff\xff\xff\xff"

#: Hash probed with an empty signature to detect nested workflow support.
NESTED_SUPPORT_PROBE_HASH: bytes = bytes.fromhex("7739") * 16


# ---------------------------------------------------------------------------
# secp256k1
# ---------------------------------------------------------------------------

SECP256K1_N: int = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
SECP256K1_HALF_N: int = SECP256K1_N // 2

ZERO_ADDRESS: str = "0x0000000000000000000000000000000000000000"
ZERO_SALT: bytes = b"\x00" * HASH_LENGTH

UINT256_MAX: int = 2**256 - 1

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


def get_domain_name() -> Optional[str]:
    """
    Load the account's EIP-712 domain ``name`` from the environment.

    Usage:
        # In your .env file or environment setup:
        NESTED712_DOMAIN_NAME=MyAccount
    """
    return os.getenv("NESTED712_DOMAIN_NAME")


def get_domain_version() -> Optional[str]:
    """Load the account's EIP-712 domain ``version`` (``NESTED712_DOMAIN_VERSION``)."""
    return os.getenv("NESTED712_DOMAIN_VERSION")


def get_chain_id() -> Optional[str]:
    """Load the chain id (``NESTED712_CHAIN_ID``), decimal or 0x-hex, unparsed."""
    return os.getenv("NESTED712_CHAIN_ID")


def get_verifying_contract() -> Optional[str]:
    """Load the account address (``NESTED712_VERIFYING_CONTRACT``)."""
    return os.getenv("NESTED712_VERIFYING_CONTRACT")


def get_domain_salt() -> Optional[str]:
    """Load the optional bytes32 salt (``NESTED712_DOMAIN_SALT``)."""
    return os.getenv("NESTED712_DOMAIN_SALT")


def get_domain_extensions() -> List[str]:
    """
    Load the optional extension list (``NESTED712_DOMAIN_EXTENSIONS``).

    The variable holds comma-separated integers; blanks are ignored.
    """
    raw = os.getenv("NESTED712_DOMAIN_EXTENSIONS", "")
    return [item.strip() for item in raw.split(",") if item.strip()]


def get_rpc_url() -> Optional[str]:
    """
    Load the JSON-RPC endpoint used for on-chain account queries.

    Usage:
        # In your .env file or environment setup:
        NESTED712_RPC_URL=https://sepolia.infura.io/v3/<key>
    """
    return os.getenv("NESTED712_RPC_URL")


def get_log_level() -> str:
    """Load the log level (``NESTED712_LOG_LEVEL``), defaulting to ``WARNING``."""
    return os.getenv("NESTED712_LOG_LEVEL", "WARNING").upper()


def setup_logging(log_level: Optional[str] = None) -> None:
    """
    Configure logging for the package.

    Args:
        log_level: Level name; falls back to ``NESTED712_LOG_LEVEL``.

    Raises:
        ValueError: If the level name is unknown.
    """
    level = (log_level or get_log_level()).upper()
    valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if level not in valid_levels:
        raise ValueError(f"log_level must be one of {valid_levels}, got {level}")

    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
