"""
Nested Signature Blob Codec

A nested signature is the raw ECDSA signature followed by the data the
verifier needs to rebuild the ``TypedDataSign`` digest::

    signature ‖ APP_DOMAIN_SEPARATOR ‖ contents ‖ contentsType ‖ uint16(len(contentsType))

The trailing big-endian length is the only delimiter, so every other field
is sliced off the end of the blob relative to it. Any blob that is too
short, or whose length tag points past its start, decodes to
:class:`Unrecognized` and is treated as a plain personal signature.
"""

from dataclasses import dataclass
from typing import Union

from ..engine.exceptions import MalformedBlobError
from .constants import HASH_LENGTH, CONTENTS_TYPE_LENGTH_SIZE, MIN_NESTED_BLOB_LENGTH
from .utils import BytesLike, to_raw_bytes

_MAX_CONTENTS_TYPE_LENGTH = 2 ** (8 * CONTENTS_TYPE_LENGTH_SIZE) - 1


@dataclass(frozen=True)
class NestedSignature:
    """
    A blob carrying nested ``TypedDataSign`` fields.

    Attributes:
        raw_signature: The ECDSA signature prefix (65 or 64 bytes when well formed).
        app_domain_separator: The application's EIP-712 domain separator.
        contents: The application's struct hash.
        contents_type: The application's type encoding; undecodable bytes
            are preserved as surrogate escapes and fail parsing later.
    """
    raw_signature: bytes
    app_domain_separator: bytes
    contents: bytes
    contents_type: str


@dataclass(frozen=True)
class Unrecognized:
    """A blob without nested fields; a personal-workflow candidate."""
    blob: bytes


DecodedSignature = Union[NestedSignature, Unrecognized]


def decode_signature(signature: BytesLike) -> DecodedSignature:
    """
    Split a signature blob into its nested fields.

    Blobs too short for the nested layout, or whose length tag reaches
    past the start, come back as :class:`Unrecognized`. A zero length tag
    decodes to an empty contents type, which the parser rejects.

    Args:
        signature: The blob as bytes or 0x-hex.

    Returns:
        :class:`NestedSignature` or :class:`Unrecognized`.

    Raises:
        TypeError: If ``signature`` is neither bytes nor a string.
        ValueError: If ``signature`` is a string that is not hexadecimal.
    """
    blob = to_raw_bytes(signature)
    if len(blob) < MIN_NESTED_BLOB_LENGTH:
        return Unrecognized(blob)

    length = int.from_bytes(blob[-CONTENTS_TYPE_LENGTH_SIZE:], "big")
    appended = MIN_NESTED_BLOB_LENGTH + length
    if appended > len(blob):
        return Unrecognized(blob)

    end = len(blob) - CONTENTS_TYPE_LENGTH_SIZE
    type_start = end - length
    contents_start = type_start - HASH_LENGTH
    separator_start = contents_start - HASH_LENGTH

    return NestedSignature(
        raw_signature=blob[:separator_start],
        app_domain_separator=blob[separator_start:contents_start],
        contents=blob[contents_start:type_start],
        contents_type=blob[type_start:end].decode("utf-8", errors="surrogateescape"),
    )


def encode_signature(
    raw_signature: BytesLike,
    app_domain_separator: BytesLike,
    contents: BytesLike,
    contents_type: str,
) -> bytes:
    """
    Build a nested signature blob; the inverse of :func:`decode_signature`.

    Args:
        raw_signature: ECDSA signature over the ``TypedDataSign`` digest.
        app_domain_separator: Application domain separator (32 bytes).
        contents: Application struct hash (32 bytes).
        contents_type: Application type encoding.

    Returns:
        The concatenated blob.

    Raises:
        MalformedBlobError: If a hash is not 32 bytes, or the type encoding
            is empty or too long for the 2-byte length tag.
    """
    separator = to_raw_bytes(app_domain_separator)
    contents_hash = to_raw_bytes(contents)
    if len(separator) != HASH_LENGTH:
        raise MalformedBlobError(
            f"app_domain_separator must be {HASH_LENGTH} bytes, got {len(separator)}"
        )
    if len(contents_hash) != HASH_LENGTH:
        raise MalformedBlobError(f"contents must be {HASH_LENGTH} bytes, got {len(contents_hash)}")

    encoded_type = contents_type.encode("utf-8", errors="surrogateescape")
    if not encoded_type:
        raise MalformedBlobError("contents_type must not be empty")
    if len(encoded_type) > _MAX_CONTENTS_TYPE_LENGTH:
        raise MalformedBlobError(
            f"contents_type is {len(encoded_type)} bytes, limit is {_MAX_CONTENTS_TYPE_LENGTH}"
        )

    return (
        to_raw_bytes(raw_signature)
        + separator
        + contents_hash
        + encoded_type
        + len(encoded_type).to_bytes(CONTENTS_TYPE_LENGTH_SIZE, "big")
    )
