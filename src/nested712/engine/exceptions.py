"""
Exception and Error Definitions Module

Defines the exception hierarchy for nested structured-data signature
verification. All exceptions inherit from BaseException for unified
exception handling.

Exception Hierarchy:
    BaseException (root)
    ├── SignatureVerificationError
    │   ├── MalformedBlobError
    │   ├── InvalidTypeDescriptorError
    │   ├── DigestMismatchError
    │   └── RecoveryFailureError
    └── ConfigurationError

Every ``SignatureVerificationError`` is caused by attacker-controlled input
and is collapsed into an invalid verification result by the decision
engine. ``ConfigurationError`` is raised for host-side misconfiguration
(e.g. a malformed domain address) and is allowed to propagate.
"""


class BaseException(Exception):
    """
    Root exception class for all project-specific exceptions.

    All custom exceptions should inherit from this class to enable
    unified exception handling and centralized error processing.
    """
    pass


class SignatureVerificationError(BaseException):
    """
    Base exception for signature verification failures.

    Parent class for all errors raised while decoding, parsing,
    rehashing or recovering a presented signature.
    """
    pass


class MalformedBlobError(SignatureVerificationError):
    """
    Raised when a signature blob violates the nested layout.

    This includes scenarios such as:
    - Application domain separator or contents not exactly 32 bytes
    - Type descriptor longer than the 2-byte length tag can express
    """
    pass


class InvalidTypeDescriptorError(SignatureVerificationError):
    """
    Raised when a contents type descriptor fails sanitization.

    This includes scenarios such as:
    - No opening parenthesis, or an empty type name
    - Type name starting with a lowercase letter or ``(``
    - Type name containing ``,``, space, ``)`` or a NUL byte

    Attributes:
        contents_type: The rejected descriptor
    """

    def __init__(self, message: str, contents_type: str = ""):
        super().__init__(message)
        self.contents_type = contents_type


class DigestMismatchError(SignatureVerificationError):
    """
    Raised when the reconstructed application hash differs from the claim hash.

    The decision engine treats this as a signal to fall back to the
    personal workflow; it is never surfaced to callers of ``verify``.

    Attributes:
        expected: Claim hash presented by the caller
        reconstructed: Hash rebuilt from the blob's nested fields
    """

    def __init__(self, message: str, expected: bytes = b"", reconstructed: bytes = b""):
        super().__init__(message)
        self.expected = expected
        self.reconstructed = reconstructed


class RecoveryFailureError(SignatureVerificationError):
    """
    Raised when ECDSA signer recovery rejects a raw signature.

    This includes scenarios such as:
    - Signature length other than 64 or 65 bytes
    - Recovery ID outside 27/28
    - Zero or out-of-range ``r``/``s``, or malleable high ``s``
    - Recovery yielding the zero address
    """
    pass


class ConfigurationError(BaseException):
    """
    Raised when configuration is missing or invalid.

    This includes scenarios such as:
    - Malformed verifying contract address in the domain descriptor
    - Chain id, salt or extension values outside their ABI ranges
    - Missing or unparsable environment variables
    """
    pass
