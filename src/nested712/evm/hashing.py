"""
Hash Tree Builder

Pure functions computing the digests of both signing workflows:

account_domain_separator
    EIP-712 domain separator of the verifying account.

personal_digest
    ``keccak(0x1901 ‖ accountSep ‖ keccak(PERSONAL_SIGN_TYPEHASH ‖ claimHash))``.

nested_digest
    ``keccak(0x1901 ‖ appSep ‖ hashStruct(TypedDataSign))`` where the
    ``TypedDataSign`` typehash is built by flat concatenation of the fixed
    wrapper fields with the caller's contents type encoding.

app_typed_data_hash
    ``keccak(0x1901 ‖ appSep ‖ contents)``; the hash an application asks
    the account to validate.

Each digest has a ``*_signable`` twin returning the
``eth_account.messages.SignableMessage`` whose EIP-191 hash is that digest,
so signing and recovery go through ``eth_account`` unchanged.
"""

from eth_abi import encode
from eth_account.messages import SignableMessage
from eth_utils import keccak
from hexbytes import HexBytes

from .constants import (
    EIP712_PREFIX,
    EIP712_DOMAIN_TYPE,
    EIP712_DOMAIN_WITH_SALT_TYPE,
    PERSONAL_SIGN_TYPEHASH,
    TYPED_DATA_SIGN_PREFIX,
    TYPED_DATA_SIGN_FIELDS,
)
from .contents import parse_contents_name
from .standards import DomainDescriptor


def hash_signable(signable: SignableMessage) -> bytes:
    """EIP-191 hash of a ``SignableMessage``: ``keccak(0x19 ‖ version ‖ header ‖ body)``."""
    return keccak(b"\x19" + signable.version + signable.header + signable.body)


def _eip712_signable(domain_separator: bytes, struct_hash: bytes) -> SignableMessage:
    return SignableMessage(HexBytes(b"\x01"), HexBytes(domain_separator), HexBytes(struct_hash))


# ---------------------------------------------------------------------------
# Domain separator
# ---------------------------------------------------------------------------

def account_domain_separator(domain: DomainDescriptor) -> bytes:
    """
    EIP-712 domain separator of the account.

    The ``EIP712Domain`` type covers ``name``, ``version``, ``chainId`` and
    ``verifyingContract``, plus ``salt`` when the descriptor uses one.
    Extensions are advertised through ERC-5267 only and never hashed here.
    """
    values = [
        keccak(text=domain.name),
        keccak(text=domain.version),
        domain.chain_id,
        domain.verifying_contract,
    ]
    abi_types = ["bytes32", "bytes32", "uint256", "address"]
    type_string = EIP712_DOMAIN_TYPE
    if domain.has_salt:
        type_string = EIP712_DOMAIN_WITH_SALT_TYPE
        abi_types.append("bytes32")
        values.append(domain.salt)

    return keccak(encode(["bytes32"] + abi_types, [keccak(text=type_string)] + values))


# ---------------------------------------------------------------------------
# PersonalSign workflow
# ---------------------------------------------------------------------------

def personal_sign_struct_hash(claim_hash: bytes) -> bytes:
    """``hashStruct(PersonalSign{prefixed})`` where ``claim_hash == keccak(prefixed)``."""
    return keccak(PERSONAL_SIGN_TYPEHASH + claim_hash)


def personal_signable(domain_separator: bytes, claim_hash: bytes) -> SignableMessage:
    return _eip712_signable(domain_separator, personal_sign_struct_hash(claim_hash))


def personal_digest(domain_separator: bytes, claim_hash: bytes) -> bytes:
    """
    Digest the key signs in the personal workflow.

    Args:
        domain_separator: The account's domain separator.
        claim_hash: Hash presented to the account.

    Returns:
        32-byte digest.
    """
    return hash_signable(personal_signable(domain_separator, claim_hash))


# ---------------------------------------------------------------------------
# TypedDataSign (nested) workflow
# ---------------------------------------------------------------------------

def typed_data_sign_type(contents_type: str) -> str:
    """
    Full ``TypedDataSign`` type encoding for a contents type.

    Raises:
        InvalidTypeDescriptorError: If the contents name is malformed.
    """
    contents_name = parse_contents_name(contents_type)
    return TYPED_DATA_SIGN_PREFIX + contents_name + TYPED_DATA_SIGN_FIELDS + contents_type


def typed_data_sign_typehash(contents_type: str) -> bytes:
    # Undecodable descriptor bytes were kept as surrogates by the codec.
    return keccak(typed_data_sign_type(contents_type).encode("utf-8", errors="surrogateescape"))


def _hash_extensions(extensions) -> bytes:
    return keccak(b"".join(item.to_bytes(32, "big") for item in extensions))


def typed_data_sign_struct_hash(
    contents: bytes,
    contents_type: str,
    domain: DomainDescriptor,
) -> bytes:
    """
    ``hashStruct(TypedDataSign)`` binding the application contents to the account.

    Fields are encoded in the order declared by the type string: typehash,
    contents, fields, name, version, chainId, verifyingContract, salt,
    extensions.
    """
    return keccak(
        encode(
            [
                "bytes32",
                "bytes32",
                "bytes1",
                "bytes32",
                "bytes32",
                "uint256",
                "address",
                "bytes32",
                "bytes32",
            ],
            [
                typed_data_sign_typehash(contents_type),
                contents,
                bytes([domain.fields]),
                keccak(text=domain.name),
                keccak(text=domain.version),
                domain.chain_id,
                domain.verifying_contract,
                domain.salt,
                _hash_extensions(domain.extensions),
            ],
        )
    )


def nested_signable(
    app_domain_separator: bytes,
    contents: bytes,
    contents_type: str,
    domain: DomainDescriptor,
) -> SignableMessage:
    return _eip712_signable(
        app_domain_separator,
        typed_data_sign_struct_hash(contents, contents_type, domain),
    )


def nested_digest(
    app_domain_separator: bytes,
    contents: bytes,
    contents_type: str,
    domain: DomainDescriptor,
) -> bytes:
    """
    Digest the key signs in the nested workflow.

    Args:
        app_domain_separator: Domain separator of the application contract.
        contents: The application's struct hash.
        contents_type: The application's type encoding, appended verbatim.
        domain: The verifying account's domain descriptor.

    Returns:
        32-byte digest.

    Raises:
        InvalidTypeDescriptorError: If the contents name is malformed.
    """
    return hash_signable(nested_signable(app_domain_separator, contents, contents_type, domain))


def app_typed_data_hash(app_domain_separator: bytes, contents: bytes) -> bytes:
    """The application's own EIP-712 hash, ``keccak(0x1901 ‖ appSep ‖ contents)``."""
    return keccak(EIP712_PREFIX + app_domain_separator + contents)
