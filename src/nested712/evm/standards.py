from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple, Union

from web3 import Web3

from ..engine.exceptions import ConfigurationError
from .constants import (
    FIELD_NAME,
    FIELD_VERSION,
    FIELD_CHAIN_ID,
    FIELD_VERIFYING_CONTRACT,
    FIELD_SALT,
    HASH_LENGTH,
    UINT256_MAX,
    ZERO_SALT,
    get_domain_name,
    get_domain_version,
    get_chain_id,
    get_verifying_contract,
    get_domain_salt,
    get_domain_extensions,
)
from .utils import to_raw_bytes


# -----------------------------
# EIP-712 Domain
# -----------------------------

_DOMAIN_FIELD_TYPES: List[Dict[str, str]] = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

_SALT_FIELD_TYPE: Dict[str, str] = {"name": "salt", "type": "bytes32"}


@dataclass
class EIP712Domain:
    """
    EIP-712 domain of an application contract.
    Used to prevent signature replay across domains.

    ``salt`` is optional; when set it is included in the domain type.
    """
    name: str
    version: str
    chainId: int
    verifyingContract: str
    salt: Optional[bytes] = None

    def types(self) -> List[Dict[str, str]]:
        """Return the ``EIP712Domain`` type entry matching the populated fields."""
        if self.salt is None:
            return list(_DOMAIN_FIELD_TYPES)
        return list(_DOMAIN_FIELD_TYPES) + [_SALT_FIELD_TYPE]

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "version": self.version,
            "chainId": self.chainId,
            "verifyingContract": self.verifyingContract,
        }
        if self.salt is not None:
            data["salt"] = self.salt
        return data


# -----------------------------
# Account domain descriptor
# -----------------------------


def _parse_int(value: Union[int, str], what: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{what} must be an integer, got bool")
    if isinstance(value, int):
        return value
    try:
        text = str(value).strip()
        return int(text, 16) if text.lower().startswith("0x") else int(text)
    except ValueError:
        raise ConfigurationError(f"{what} is not an integer: {value!r}")


@dataclass(frozen=True)
class DomainDescriptor:
    """
    The EIP-712 domain of the verifying (smart account) contract.

    Immutable per-account value supplied by the host. Values are validated
    and normalised at construction: the address is checksummed, the salt is
    coerced to 32 raw bytes and extensions to a tuple of ints.

    Attributes:
        name: Domain ``name``.
        version: Domain ``version``.
        chain_id: EVM network ID (uint256).
        verifying_contract: The account's own address.
        salt: Optional bytes32 salt; all-zero means "unused".
        extensions: ERC-5267 extension identifiers (uint256 each).

    Raises:
        ConfigurationError: If any field is outside its ABI range or the
            address is malformed.

    Example::

        domain = DomainDescriptor(
            name="Smart Account",
            version="1",
            chain_id=1,
            verifying_contract="0x1234567890123456789012345678901234567890",
        )
        domain.fields  # 0x0f
    """

    name: str
    version: str
    chain_id: int
    verifying_contract: str
    salt: bytes = ZERO_SALT
    extensions: Tuple[int, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.name, str) or not isinstance(self.version, str):
            raise ConfigurationError("Domain name and version must be strings")

        chain_id = _parse_int(self.chain_id, "chain_id")
        if not 0 <= chain_id <= UINT256_MAX:
            raise ConfigurationError(f"chain_id out of uint256 range: {chain_id}")

        if not isinstance(self.verifying_contract, str) or not Web3.is_address(self.verifying_contract):
            raise ConfigurationError(
                f"verifying_contract is not a valid address: {self.verifying_contract!r}"
            )

        try:
            salt = to_raw_bytes(self.salt)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid salt: {exc}")
        if len(salt) != HASH_LENGTH:
            raise ConfigurationError(f"salt must be {HASH_LENGTH} bytes, got {len(salt)}")

        extensions = tuple(_parse_int(item, "extension") for item in self.extensions)
        for item in extensions:
            if not 0 <= item <= UINT256_MAX:
                raise ConfigurationError(f"extension out of uint256 range: {item}")

        object.__setattr__(self, "chain_id", chain_id)
        object.__setattr__(self, "verifying_contract", Web3.to_checksum_address(self.verifying_contract))
        object.__setattr__(self, "salt", salt)
        object.__setattr__(self, "extensions", extensions)

    @property
    def fields(self) -> int:
        """ERC-5267 bitmap of the domain fields in use."""
        bits = FIELD_NAME | FIELD_VERSION | FIELD_CHAIN_ID | FIELD_VERIFYING_CONTRACT
        if self.salt != ZERO_SALT:
            bits |= FIELD_SALT
        return bits

    @property
    def has_salt(self) -> bool:
        return bool(self.fields & FIELD_SALT)

    def eip712_domain(self) -> Tuple[bytes, str, str, int, str, bytes, List[int]]:
        """
        Return the ERC-5267 ``eip712Domain()`` tuple.

        Returns:
            ``(fields, name, version, chainId, verifyingContract, salt, extensions)``
            with ``fields`` as a single byte.
        """
        return (
            bytes([self.fields]),
            self.name,
            self.version,
            self.chain_id,
            self.verifying_contract,
            self.salt,
            list(self.extensions),
        )

    def to_eip712_domain(self) -> EIP712Domain:
        """The account domain as an ``EIP712Domain`` (salt only when in use)."""
        return EIP712Domain(
            name=self.name,
            version=self.version,
            chainId=self.chain_id,
            verifyingContract=self.verifying_contract,
            salt=self.salt if self.has_salt else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict of all six fields plus the derived ``fields`` byte, hex-encoded."""
        return {
            "fields": "0x" + bytes([self.fields]).hex(),
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": self.verifying_contract,
            "salt": "0x" + self.salt.hex(),
            "extensions": list(self.extensions),
        }

    @classmethod
    def from_env(cls) -> "DomainDescriptor":
        """
        Build the descriptor from ``NESTED712_*`` environment variables.

        ``NESTED712_DOMAIN_NAME``, ``NESTED712_DOMAIN_VERSION``,
        ``NESTED712_CHAIN_ID`` and ``NESTED712_VERIFYING_CONTRACT`` are
        required; ``NESTED712_DOMAIN_SALT`` and
        ``NESTED712_DOMAIN_EXTENSIONS`` are optional.

        Raises:
            ConfigurationError: If a required variable is missing or any
                value is invalid.
        """
        required = {
            "NESTED712_DOMAIN_NAME": get_domain_name(),
            "NESTED712_DOMAIN_VERSION": get_domain_version(),
            "NESTED712_CHAIN_ID": get_chain_id(),
            "NESTED712_VERIFYING_CONTRACT": get_verifying_contract(),
        }
        missing = [key for key, value in required.items() if value is None]
        if missing:
            raise ConfigurationError(f"Missing environment variables: {', '.join(missing)}")

        salt = get_domain_salt()
        return cls(
            name=required["NESTED712_DOMAIN_NAME"],
            version=required["NESTED712_DOMAIN_VERSION"],
            chain_id=required["NESTED712_CHAIN_ID"],
            verifying_contract=required["NESTED712_VERIFYING_CONTRACT"],
            salt=salt if salt else ZERO_SALT,
            extensions=tuple(get_domain_extensions()),
        )

    @classmethod
    def from_eip712_domain(cls, value) -> "DomainDescriptor":
        """
        Build the descriptor from an ERC-5267 ``eip712Domain()`` tuple.

        Raises:
            ConfigurationError: If the tuple is malformed or advertises a
                field set other than ``0x0f`` / ``0x1f``.
        """
        try:
            fields, name, version, chain_id, verifying_contract, salt, extensions = value
        except (TypeError, ValueError):
            raise ConfigurationError(f"eip712Domain() must return 7 values, got {value!r}")

        descriptor = cls(
            name=name,
            version=version,
            chain_id=chain_id,
            verifying_contract=verifying_contract,
            salt=bytes(salt),
            extensions=tuple(extensions),
        )
        if bytes(fields) != bytes([descriptor.fields]):
            raise ConfigurationError(
                f"Unsupported eip712Domain fields 0x{bytes(fields).hex()} "
                f"(expected 0x{descriptor.fields:02x})"
            )
        return descriptor


# -----------------------------
# PersonalSign typed data
# -----------------------------


@dataclass
class PersonalSignTypedData:
    """
    EIP-712 typed-data container for the ``PersonalSign`` workflow.

    The wallet displays ``prefixed`` (an EIP-191 personal message) under
    the account's own domain. The struct hash equals
    ``keccak(PERSONAL_SIGN_TYPEHASH ‖ keccak(prefixed))``, so the claim hash
    the account receives is ``keccak(prefixed)``.

    Attributes:
        domain: The account's ``EIP712Domain``.
        prefixed: Full EIP-191 message bytes (``"\\x19Ethereum Signed Message:\\n" ‖ len ‖ msg``).
    """
    domain: EIP712Domain
    prefixed: bytes

    def to_dict(self) -> Dict[str, Any]:
        """Return a dictionary compatible with EIP-712 structured signing."""
        return {
            "types": {
                "EIP712Domain": self.domain.types(),
                "PersonalSign": [{"name": "prefixed", "type": "bytes"}],
            },
            "primaryType": "PersonalSign",
            "domain": self.domain.to_dict(),
            "message": {"prefixed": self.prefixed},
        }


# -----------------------------
# TypedDataSign (nested) typed data
# -----------------------------


@dataclass
class TypedDataSignTypedData:
    """
    EIP-712 typed-data container for the nested ``TypedDataSign`` workflow.

    The application's struct (``contents``) is wrapped in a
    ``TypedDataSign`` struct that also carries the account's domain fields,
    and the whole payload is signed under the application's domain. The
    wallet therefore displays both the application message and which
    account it is bound to.

    Attributes:
        app_domain: The application's ``EIP712Domain``.
        account_domain: The verifying account's ``DomainDescriptor``.
        contents_name: Primary type name of the application struct.
        contents_types: Type definitions of the application struct and its
            dependencies (``{"Mail": [{"name": ..., "type": ...}, ...]}``).
        contents: The application message values.
    """
    app_domain: EIP712Domain
    account_domain: DomainDescriptor
    contents_name: str
    contents_types: Dict[str, List[Dict[str, str]]]
    contents: Dict[str, Any]

    def typed_data_sign_type(self) -> List[Dict[str, str]]:
        return [
            {"name": "contents", "type": self.contents_name},
            {"name": "fields", "type": "bytes1"},
            {"name": "name", "type": "string"},
            {"name": "version", "type": "string"},
            {"name": "chainId", "type": "uint256"},
            {"name": "verifyingContract", "type": "address"},
            {"name": "salt", "type": "bytes32"},
            {"name": "extensions", "type": "uint256[]"},
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Return a dictionary compatible with EIP-712 structured signing.

        The returned structure follows the conventional layout consumed by
        EIP-712 signing libraries: { types, primaryType, domain, message }.
        """
        types = {
            "EIP712Domain": self.app_domain.types(),
            "TypedDataSign": self.typed_data_sign_type(),
        }
        types.update(self.contents_types)
        account = self.account_domain
        return {
            "types": types,
            "primaryType": "TypedDataSign",
            "domain": self.app_domain.to_dict(),
            "message": {
                "contents": self.contents,
                "fields": bytes([account.fields]),
                "name": account.name,
                "version": account.version,
                "chainId": account.chain_id,
                "verifyingContract": account.verifying_contract,
                "salt": account.salt,
                "extensions": list(account.extensions),
            },
        }


# -----------------------------
# Account contract ABIs
# -----------------------------


class ERC1271ABI:
    """
    ABI definition for the ERC-1271 ``isValidSignature`` function.

    ``isValidSignature(bytes32 hash, bytes signature) returns (bytes4)``;
    the same entry answers the nested-workflow support probe.

    Use ``to_dict()`` to obtain the raw ABI entry dict, or ``to_list()``
    to get the full ABI list accepted by ``web3.eth.contract``.
    """

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inputs": [
                {"name": "hash", "type": "bytes32"},
                {"name": "signature", "type": "bytes"},
            ],
            "name": "isValidSignature",
            "outputs": [{"name": "", "type": "bytes4"}],
            "stateMutability": "view",
            "type": "function",
        }

    def to_list(self) -> List[Dict[str, Any]]:
        """Return the full ABI as a list compatible with ``web3.eth.contract``."""
        return [self.to_dict()]


class ERC5267ABI:
    """ABI definition for the ERC-5267 ``eip712Domain()`` view."""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inputs": [],
            "name": "eip712Domain",
            "outputs": [
                {"name": "fields", "type": "bytes1"},
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
                {"name": "salt", "type": "bytes32"},
                {"name": "extensions", "type": "uint256[]"},
            ],
            "stateMutability": "view",
            "type": "function",
        }

    def to_list(self) -> List[Dict[str, Any]]:
        return [self.to_dict()]
