"""
Nested EIP-712 Signing Utilities

Wallet-side helpers producing signatures an account can validate with
``verify``. All cryptographic operations are performed in-process using
``eth_account``; no RPC calls are made.

Exported helpers
----------------
sign_personal
    Sign a claim hash through the ``PersonalSign`` workflow and return the
    65-byte signature blob.

sign_nested
    Sign pre-computed application fields (domain separator, contents hash,
    contents type) through the ``TypedDataSign`` workflow and return the
    nested blob.

sign_typed_data_for_account
    Take an ordinary EIP-712 payload an application wants signed, derive
    the nested fields and sign it for a specific account.

build_personal_sign_typed_data / build_typed_data_sign_typed_data
    Low-level helpers returning the EIP-712 envelopes a wallet would
    display, without signing. Useful when the signing step is handled
    externally (e.g. a hardware wallet or MPC service).
"""

from typing import Any, Dict, List, Optional, Set, Tuple, Union

from eth_account import Account
from eth_account.messages import SignableMessage, encode_defunct, encode_typed_data

from .codec import encode_signature
from .hashing import (
    account_domain_separator,
    app_typed_data_hash,
    hash_signable,
    nested_signable,
    personal_signable,
)
from .schemas import ECDSASignature, SignedBlob
from .standards import (
    DomainDescriptor,
    EIP712Domain,
    PersonalSignTypedData,
    TypedDataSignTypedData,
)
from .utils import BytesLike, to_raw_bytes, to_0x_hex

TypeDefinitions = Dict[str, List[Dict[str, str]]]

# ---------------------------------------------------------------------------
# Type encoding
# ---------------------------------------------------------------------------


def _find_type_dependencies(
    type_name: str,
    types: TypeDefinitions,
    results: Optional[Set[str]] = None,
) -> Set[str]:
    """Collect all struct type names that type_name depends on (recursive)."""
    if results is None:
        results = set()
    type_name = type_name.split("[")[0].strip()
    if type_name in results or type_name not in types:
        return results
    results.add(type_name)
    for field in types[type_name]:
        _find_type_dependencies(field["type"], types, results)
    return results


def encode_contents_type(primary_type: str, types: TypeDefinitions) -> str:
    """
    EIP-712 ``encodeType`` of an application struct.

    The primary type comes first, followed by its dependencies sorted by
    name, e.g. ``"Mail(Person from,Person to,string contents)Person(string name,address wallet)"``.
    This is the ``contentsType`` carried by a nested signature.
    """
    deps = _find_type_dependencies(primary_type, types) - {primary_type}
    out = []
    for type_name in [primary_type] + sorted(deps):
        parts = [f"{field['type']} {field['name']}" for field in types[type_name]]
        out.append(f"{type_name}({','.join(parts)})")
    return "".join(out)


def _contents_types(full_message: Dict[str, Any]) -> TypeDefinitions:
    return {name: fields for name, fields in full_message["types"].items() if name != "EIP712Domain"}


def split_typed_data(full_message: Dict[str, Any]) -> Tuple[bytes, bytes, str]:
    """
    Derive the nested fields of an application EIP-712 payload.

    Args:
        full_message: ``{types, primaryType, domain, message}`` as accepted
            by ``eth_account.messages.encode_typed_data``.

    Returns:
        ``(app_domain_separator, contents, contents_type)``.
    """
    signable = encode_typed_data(full_message=full_message)
    contents_type = encode_contents_type(full_message["primaryType"], _contents_types(full_message))
    return bytes(signable.header), bytes(signable.body), contents_type


# ---------------------------------------------------------------------------
# Envelope builders
# ---------------------------------------------------------------------------


def personal_prefixed_message(message: Union[str, bytes]) -> bytes:
    """EIP-191 personal message bytes: ``"\\x19Ethereum Signed Message:\\n" ‖ len ‖ message``."""
    if isinstance(message, str):
        defunct = encode_defunct(text=message)
    else:
        defunct = encode_defunct(primitive=message)
    return b"\x19" + defunct.version + defunct.header + defunct.body


def build_personal_sign_typed_data(
    domain: DomainDescriptor,
    message: Union[str, bytes],
) -> PersonalSignTypedData:
    """
    Wrap a personal message in the account's ``PersonalSign`` envelope.

    The claim hash an application presents for this message is
    ``keccak(prefixed)``, i.e. the ordinary ``personal_sign`` hash.

    Example::

        typed = build_personal_sign_typed_data(domain, "hello")
        Account.sign_typed_data(key, full_message=typed.to_dict())
    """
    return PersonalSignTypedData(
        domain=domain.to_eip712_domain(),
        prefixed=personal_prefixed_message(message),
    )


def build_typed_data_sign_typed_data(
    account_domain: DomainDescriptor,
    full_message: Dict[str, Any],
) -> TypedDataSignTypedData:
    """
    Wrap an application EIP-712 payload in the account's ``TypedDataSign`` envelope.

    Args:
        account_domain: The verifying account's domain.
        full_message:   Application payload ``{types, primaryType, domain, message}``.

    Returns:
        ``TypedDataSignTypedData`` whose ``to_dict()`` is compatible with
        ``eth_account.Account.sign_typed_data`` and ``eth_signTypedData_v4``.
    """
    app = full_message["domain"]
    app_domain = EIP712Domain(
        name=app["name"],
        version=app["version"],
        chainId=app["chainId"],
        verifyingContract=app["verifyingContract"],
        salt=to_raw_bytes(app["salt"]) if app.get("salt") is not None else None,
    )
    return TypedDataSignTypedData(
        app_domain=app_domain,
        account_domain=account_domain,
        contents_name=full_message["primaryType"],
        contents_types=_contents_types(full_message),
        contents=full_message["message"],
    )


# ---------------------------------------------------------------------------
# Signers
# ---------------------------------------------------------------------------


def _sign(private_key: str, signable: SignableMessage, signature_type: str) -> Tuple[str, ECDSASignature]:
    signed = Account.sign_message(signable, private_key)
    signer = Account.from_key(private_key).address
    return signer, ECDSASignature(
        signature_type=signature_type,
        v=signed.v,
        r=hex(signed.r),
        s=hex(signed.s),
    )


def sign_personal(
    *,
    private_key: str,
    domain: DomainDescriptor,
    claim_hash: BytesLike,
) -> SignedBlob:
    """
    Sign ``claim_hash`` through the ``PersonalSign`` workflow.

    Args:
        private_key: Hex-encoded secp256k1 private key of the account owner.
        domain:      The verifying account's domain.
        claim_hash:  Hash the account will be asked to validate.

    Returns:
        ``SignedBlob`` whose ``blob`` is the packed 65-byte signature.
    """
    claim = to_raw_bytes(claim_hash)
    signable = personal_signable(account_domain_separator(domain), claim)
    signer, signature = _sign(private_key, signable, "PersonalSign")
    return SignedBlob(
        workflow="personal",
        signer=signer,
        claim_hash=to_0x_hex(claim),
        digest=to_0x_hex(hash_signable(signable)),
        signature=signature,
        blob=signature.to_packed_hex(),
    )


def sign_nested(
    *,
    private_key: str,
    domain: DomainDescriptor,
    app_domain_separator: BytesLike,
    contents: BytesLike,
    contents_type: str,
    compact: bool = False,
) -> SignedBlob:
    """
    Sign application fields through the nested ``TypedDataSign`` workflow.

    Args:
        private_key:          Hex-encoded secp256k1 private key of the account owner.
        domain:               The verifying account's domain.
        app_domain_separator: Application domain separator (32 bytes).
        contents:             Application struct hash (32 bytes).
        contents_type:        Application ``encodeType`` string.
        compact:              Embed a 64-byte EIP-2098 signature instead of 65 bytes.

    Returns:
        ``SignedBlob`` whose ``claim_hash`` is
        ``keccak(0x1901 ‖ app_domain_separator ‖ contents)``.

    Raises:
        InvalidTypeDescriptorError: If ``contents_type`` has a malformed name.
    """
    separator = to_raw_bytes(app_domain_separator)
    contents_hash = to_raw_bytes(contents)
    signable = nested_signable(separator, contents_hash, contents_type, domain)
    signer, signature = _sign(private_key, signable, "TypedDataSign")
    raw = signature.to_compact_bytes() if compact else signature.to_bytes()
    blob = encode_signature(raw, separator, contents_hash, contents_type)
    return SignedBlob(
        workflow="nested",
        signer=signer,
        claim_hash=to_0x_hex(app_typed_data_hash(separator, contents_hash)),
        digest=to_0x_hex(hash_signable(signable)),
        signature=signature,
        blob=to_0x_hex(blob),
    )


def sign_typed_data_for_account(
    *,
    private_key: str,
    domain: DomainDescriptor,
    full_message: Dict[str, Any],
) -> SignedBlob:
    """
    Sign an application EIP-712 payload for a specific account.

    The application later calls the account's ``isValidSignature`` with
    the payload's ordinary EIP-712 hash; the returned blob makes that
    check succeed only for ``domain``'s account.

    Example::

        signed = sign_typed_data_for_account(
            private_key="0xKEY",
            domain=account_domain,
            full_message=mail_typed_data,
        )
        account.is_valid_signature(signed.claim_hash, signed.blob_bytes())
    """
    separator, contents, contents_type = split_typed_data(full_message)
    return sign_nested(
        private_key=private_key,
        domain=domain,
        app_domain_separator=separator,
        contents=contents,
        contents_type=contents_type,
    )
