"""
Contents type descriptor parsing.

A nested signature carries the application's EIP-712 type encoding
(``contentsType``), e.g. ``"Mail(address from,address to,string message)"``.
Its leading identifier, the contents name, is spliced into the
``TypedDataSign`` type string, so it must not be able to inject extra
fields, terminate the struct early or impersonate a primitive type.
Descriptors that break these rules are rejected outright; they are never
repaired.
"""

import logging

from ..engine.exceptions import InvalidTypeDescriptorError

logger = logging.getLogger(__name__)

#: Characters that would let a contents name alter the surrounding type string.
FORBIDDEN_NAME_CHARS = frozenset(", )\x00")


def parse_contents_name(contents_type: str) -> str:
    """
    Extract and validate the contents name of a type descriptor.

    The name is the substring before the first ``(``. It is rejected when

    * there is no ``(`` or it is the first character (empty name),
    * it starts with a lowercase ASCII letter (reserved for primitive types)
      or with ``(``,
    * it contains ``,``, a space, ``)`` or a NUL byte,
    * its bytes are not valid UTF-8.

    Only the name is checked; the field list after ``(`` is hashed
    byte for byte, whatever its encoding.

    Args:
        contents_type: The descriptor as found in the signature blob.

    Returns:
        The contents name, e.g. ``"Mail"``.

    Raises:
        InvalidTypeDescriptorError: If any rule is violated.
    """
    end = contents_type.find("(")
    if end <= 0:
        raise InvalidTypeDescriptorError(
            "Contents type has no name before '('", contents_type=contents_type
        )

    name = contents_type[:end]
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        raise InvalidTypeDescriptorError(
            "Contents name is not valid UTF-8", contents_type=contents_type
        )

    first = name[0]
    if "a" <= first <= "z" or first == "(":
        raise InvalidTypeDescriptorError(
            f"Contents name must not start with {first!r}", contents_type=contents_type
        )

    bad = FORBIDDEN_NAME_CHARS.intersection(name)
    if bad:
        raise InvalidTypeDescriptorError(
            f"Contents name contains forbidden characters: {sorted(bad)!r}",
            contents_type=contents_type,
        )

    return name


def is_valid_contents_type(contents_type: str) -> bool:
    """Non-raising form of :func:`parse_contents_name`."""
    try:
        parse_contents_name(contents_type)
    except InvalidTypeDescriptorError as exc:
        logger.debug("Rejected contents type %r: %s", contents_type, exc)
        return False
    return True
