"""
Nested Signature Verification Tests

End-to-end tests of ``verify``: signatures produced by the signing helpers
and by ``eth_account.Account.sign_typed_data`` are decoded, routed to the
right workflow and recovered.
"""

import pytest
from eth_utils import keccak

from nested712.engine.exceptions import RecoveryFailureError
from nested712.evm.codec import decode_signature, encode_signature
from nested712.evm.constants import SECP256K1_N
from nested712.evm.hashing import nested_digest
from nested712.evm.recovery import recover_signer, split_signature
from nested712.evm.signatures import (
    build_personal_sign_typed_data,
    build_typed_data_sign_typed_data,
    personal_prefixed_message,
    sign_nested,
    sign_personal,
    sign_typed_data_for_account,
)
from nested712.evm.verifies import verify
from nested712.schemas.bases import VerificationStatus

from eth_account import Account

from test_mocks import (
    MAIL_CONTENTS_TYPE,
    MOCK_APP_DOMAIN_SEPARATOR,
    MOCK_ATTACKER_ADDRESS,
    MOCK_ATTACKER_PRIVATE_KEY,
    MOCK_CONTENTS,
    MOCK_EXTENSIONS,
    MOCK_OTHER_ACCOUNT_ADDRESS,
    MOCK_OWNER_ADDRESS,
    MOCK_OWNER_PRIVATE_KEY,
    MOCK_SALT,
    app_claim_hash,
    create_account_domain,
    create_mail_typed_data,
    create_nested_blob,
    create_wallet_nested_blob,
    sign_raw_hash,
)


@pytest.fixture
def domain():
    return create_account_domain()


@pytest.fixture
def claim():
    return app_claim_hash(MOCK_APP_DOMAIN_SEPARATOR, MOCK_CONTENTS)


class TestNestedWorkflow:
    """Signatures carrying nested fields."""

    def test_accepts_owner_signature(self, domain, claim):
        blob = create_nested_blob(domain)
        result = verify(domain, claim, blob)

        assert result.is_success()
        assert result.workflow == "nested"
        assert result.signer == MOCK_OWNER_ADDRESS
        assert result.contents_name == "Mail"
        assert result.claim_hash == "0x" + claim.hex()

    def test_accepts_hex_inputs(self, domain, claim):
        blob = create_nested_blob(domain)
        result = verify(domain, "0x" + claim.hex(), "0x" + blob.hex())
        assert result.signer == MOCK_OWNER_ADDRESS

    def test_accepts_compact_signature(self, domain, claim):
        blob = create_nested_blob(domain, compact=True)
        assert len(decode_signature(blob).raw_signature) == 64

        result = verify(domain, claim, blob)
        assert result.is_success()
        assert result.signer == MOCK_OWNER_ADDRESS

    @pytest.mark.parametrize(
        "salt,extensions",
        [(None, ()), (MOCK_SALT, ()), (MOCK_SALT, MOCK_EXTENSIONS)],
    )
    def test_accepts_wallet_signature(self, salt, extensions):
        """A wallet signing the displayed envelope produces a valid blob."""
        domain = create_account_domain(salt=salt, extensions=extensions)
        mail = create_mail_typed_data()
        envelope = build_typed_data_sign_typed_data(domain, mail).to_dict()
        blob = create_wallet_nested_blob(envelope, mail)
        claim = sign_typed_data_for_account(
            private_key=MOCK_OWNER_PRIVATE_KEY, domain=domain, full_message=mail
        ).claim_hash

        result = verify(domain, claim, blob)
        assert result.is_success()
        assert result.workflow == "nested"
        assert result.signer == MOCK_OWNER_ADDRESS

    def test_replay_to_other_account_recovers_other_signer(self, claim):
        """A blob signed for one account does not recover the owner on another."""
        blob = create_nested_blob(create_account_domain())
        other = create_account_domain(verifying_contract=MOCK_OTHER_ACCOUNT_ADDRESS)

        result = verify(other, claim, blob)
        assert result.signer != MOCK_OWNER_ADDRESS

    def test_contents_name_only_in_nested_results(self, domain, claim):
        blob = create_nested_blob(domain)
        assert verify(domain, claim, blob).contents_name == "Mail"

    def test_signature_over_app_hash_does_not_recover_owner(self, domain, claim):
        """The key must sign the TypedDataSign digest, not the application hash itself."""
        raw = sign_raw_hash(claim)
        blob = encode_signature(raw, MOCK_APP_DOMAIN_SEPARATOR, MOCK_CONTENTS, MAIL_CONTENTS_TYPE)

        result = verify(domain, claim, blob)
        assert result.workflow == "nested"
        assert result.digest != "0x" + claim.hex()
        assert result.signer != MOCK_OWNER_ADDRESS

    def test_undecodable_field_list_is_signed_verbatim(self, domain, claim):
        contents_type = b"Mail(string \xff)".decode("utf-8", "surrogateescape")
        digest = nested_digest(MOCK_APP_DOMAIN_SEPARATOR, MOCK_CONTENTS, contents_type, domain)
        blob = encode_signature(
            sign_raw_hash(digest), MOCK_APP_DOMAIN_SEPARATOR, MOCK_CONTENTS, contents_type
        )

        result = verify(domain, claim, blob)
        assert result.is_success()
        assert result.workflow == "nested"
        assert result.signer == MOCK_OWNER_ADDRESS
        assert result.contents_name == "Mail"


class TestFallback:
    """Blobs whose nested fields do not rebuild the claim hash."""

    def test_mutated_app_separator_falls_back_and_fails(self, domain):
        blob = create_nested_blob(domain)
        mutated = bytearray(MOCK_APP_DOMAIN_SEPARATOR)
        mutated[0] ^= 0x01
        claim = app_claim_hash(bytes(mutated), MOCK_CONTENTS)

        result = verify(domain, claim, blob)
        assert not result.is_success()
        assert result.status == VerificationStatus.INVALID_SIGNATURE
        assert result.workflow == "personal"
        assert result.contents_name is None

    def test_nested_blob_for_unrelated_claim(self, domain):
        blob = create_nested_blob(domain)
        result = verify(domain, keccak(text="unrelated"), blob)
        assert result.workflow == "personal"
        assert not result.is_valid


class TestPersonalWorkflow:
    """Plain 65-byte signatures."""

    def test_accepts_owner_signature(self, domain):
        claim = keccak(text="hello")
        signed = sign_personal(private_key=MOCK_OWNER_PRIVATE_KEY, domain=domain, claim_hash=claim)

        result = verify(domain, claim, signed.blob_bytes())
        assert result.is_success()
        assert result.workflow == "personal"
        assert result.signer == MOCK_OWNER_ADDRESS
        assert result.digest == signed.digest

    def test_accepts_wallet_signature(self, domain):
        """``PersonalSign`` typed data signed by a wallet validates against ``keccak(prefixed)``."""
        envelope = build_personal_sign_typed_data(domain, "hello").to_dict()
        signed = Account.sign_typed_data(MOCK_OWNER_PRIVATE_KEY, full_message=envelope)
        claim = keccak(personal_prefixed_message("hello"))

        result = verify(domain, claim, bytes(signed.signature))
        assert result.is_success()
        assert result.signer == MOCK_OWNER_ADDRESS

    def test_recovers_attacker(self, domain):
        """Verification reports whoever signed; owner comparison is the caller's job."""
        claim = keccak(text="hello")
        signed = sign_personal(private_key=MOCK_ATTACKER_PRIVATE_KEY, domain=domain, claim_hash=claim)
        assert verify(domain, claim, signed.blob_bytes()).signer == MOCK_ATTACKER_ADDRESS

    def test_signature_for_other_domain(self, domain):
        claim = keccak(text="hello")
        other = create_account_domain(verifying_contract=MOCK_OTHER_ACCOUNT_ADDRESS)
        signed = sign_personal(private_key=MOCK_OWNER_PRIVATE_KEY, domain=other, claim_hash=claim)
        assert verify(domain, claim, signed.blob_bytes()).signer != MOCK_OWNER_ADDRESS


class TestRejection:
    """Malformed or adversarial input."""

    def test_invalid_contents_type_is_not_retried(self, domain, claim):
        """A malformed descriptor is rejected even though the claim hash matches."""
        signed = sign_nested(
            private_key=MOCK_OWNER_PRIVATE_KEY,
            domain=domain,
            app_domain_separator=MOCK_APP_DOMAIN_SEPARATOR,
            contents=MOCK_CONTENTS,
            contents_type=MAIL_CONTENTS_TYPE,
        )
        blob = encode_signature(signed.signature.to_bytes(), MOCK_APP_DOMAIN_SEPARATOR, MOCK_CONTENTS, "mail(uint x")

        result = verify(domain, claim, blob)
        assert result.status == VerificationStatus.INVALID_TYPE_DESCRIPTOR
        assert result.workflow is None
        assert result.error_details["contents_type"] == "mail(uint x"

    def test_non_utf8_contents_type(self, domain, claim):
        type_bytes = b"Mail\xff(uint256 a)"
        blob = (
            b"\x00" * 65 + MOCK_APP_DOMAIN_SEPARATOR + MOCK_CONTENTS + type_bytes
            + len(type_bytes).to_bytes(2, "big")
        )
        result = verify(domain, claim, blob)
        assert result.status == VerificationStatus.INVALID_TYPE_DESCRIPTOR
        assert result.error_details["contents_type"] == "Mail\\xff(uint256 a)"

    def test_zero_length_tag_is_not_retried(self, domain, claim):
        """An empty contents type is rejected, never treated as a personal signature."""
        signed = sign_personal(private_key=MOCK_OWNER_PRIVATE_KEY, domain=domain, claim_hash=claim)
        blob = signed.signature.to_bytes() + MOCK_APP_DOMAIN_SEPARATOR + MOCK_CONTENTS + b"\x00\x00"

        result = verify(domain, claim, blob)
        assert result.status == VerificationStatus.INVALID_TYPE_DESCRIPTOR
        assert result.workflow is None
        assert result.error_details["contents_type"] == ""

    def test_high_s_is_rejected(self, domain):
        claim = keccak(text="hello")
        signature = sign_personal(
            private_key=MOCK_OWNER_PRIVATE_KEY, domain=domain, claim_hash=claim
        ).signature.to_bytes()
        r, s, v = signature[:32], int.from_bytes(signature[32:64], "big"), signature[64]
        malleated = r + (SECP256K1_N - s).to_bytes(32, "big") + bytes([55 - v])

        result = verify(domain, claim, malleated)
        assert result.status == VerificationStatus.INVALID_SIGNATURE
        assert "malleable" in result.message

    @pytest.mark.parametrize("length", [0, 1, 63, 66])
    def test_bad_signature_length(self, domain, length):
        result = verify(domain, keccak(text="hello"), b"\x01" * length)
        assert result.status == VerificationStatus.INVALID_SIGNATURE
        assert result.signer is None

    @pytest.mark.parametrize("length", [0, 31, 33])
    def test_bad_claim_length(self, domain, length):
        result = verify(domain, b"\x00" * length, b"\x00" * 65)
        assert result.status == VerificationStatus.INVALID_SIGNATURE
        assert result.error_details == {"claim_hash_length": length}

    def test_unreadable_hex(self, domain):
        result = verify(domain, "0xzz", b"\x00" * 65)
        assert result.status == VerificationStatus.INVALID_SIGNATURE
        assert result.get_error_message()

    def test_failure_reports_domain(self, domain):
        result = verify(domain, b"\x00" * 31, b"")
        assert result.domain == domain.to_dict()


class TestRecovery:
    """Signature splitting rules."""

    def test_split_compact(self):
        r = 1
        s = 2
        compact = r.to_bytes(32, "big") + ((1 << 255) | s).to_bytes(32, "big")
        assert split_signature(compact) == (28, r, s)

    @pytest.mark.parametrize("v", [0, 1, 26, 29])
    def test_rejects_recovery_id(self, v):
        with pytest.raises(RecoveryFailureError, match="recovery ID"):
            split_signature(b"\x00" * 31 + b"\x01" + b"\x00" * 31 + b"\x01" + bytes([v]))

    def test_rejects_zero_r(self):
        with pytest.raises(RecoveryFailureError, match="r is out of range"):
            split_signature(b"\x00" * 32 + b"\x00" * 31 + b"\x01" + b"\x1b")

    def test_rejects_r_at_curve_order(self):
        signature = SECP256K1_N.to_bytes(32, "big") + (1).to_bytes(32, "big") + b"\x1b"
        with pytest.raises(RecoveryFailureError, match="r is out of range"):
            split_signature(signature)

    def test_recover_returns_checksum_address(self, domain):
        claim = keccak(text="hello")
        signed = sign_personal(private_key=MOCK_OWNER_PRIVATE_KEY, domain=domain, claim_hash=claim)
        assert recover_signer(bytes.fromhex(signed.digest[2:]), signed.blob_bytes()) == MOCK_OWNER_ADDRESS
