from .account import SmartAccount
from .codec import NestedSignature, Unrecognized, decode_signature, encode_signature
from .contents import parse_contents_name, is_valid_contents_type
from .hashing import (
    account_domain_separator,
    personal_digest,
    nested_digest,
    app_typed_data_hash,
    typed_data_sign_typehash,
)
from .onchain import get_web3, query_account_domain, query_is_valid_signature, query_nested_support
from .recovery import recover_signer, split_signature
from .schemas import ECDSASignature, SignedBlob, NestedVerificationResult
from .signatures import (
    sign_personal,
    sign_nested,
    sign_typed_data_for_account,
    build_personal_sign_typed_data,
    build_typed_data_sign_typed_data,
)
from .standards import DomainDescriptor, EIP712Domain
from .verifies import verify

__all__ = [
    "SmartAccount",
    "NestedSignature",
    "Unrecognized",
    "decode_signature",
    "encode_signature",
    "parse_contents_name",
    "is_valid_contents_type",
    "account_domain_separator",
    "personal_digest",
    "nested_digest",
    "app_typed_data_hash",
    "typed_data_sign_typehash",
    "get_web3",
    "query_account_domain",
    "query_is_valid_signature",
    "query_nested_support",
    "recover_signer",
    "split_signature",
    "ECDSASignature",
    "SignedBlob",
    "NestedVerificationResult",
    "sign_personal",
    "sign_nested",
    "sign_typed_data_for_account",
    "build_personal_sign_typed_data",
    "build_typed_data_sign_typed_data",
    "DomainDescriptor",
    "EIP712Domain",
    "verify",
]
