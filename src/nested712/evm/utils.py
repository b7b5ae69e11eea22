from typing import Union

from eth_utils import to_bytes, is_hexstr

BytesLike = Union[bytes, bytearray, str]


def to_raw_bytes(value: BytesLike) -> bytes:
    """
    Normalise a bytes-like or 0x-hex value to ``bytes``.

    Raises:
        TypeError: For values that are neither bytes nor strings.
        ValueError: For strings that are not hexadecimal.
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        if not is_hexstr(value):
            raise ValueError(f"Not a hex string: {value!r}")
        return to_bytes(hexstr=value)
    raise TypeError(f"Expected bytes or hex string, got {type(value).__name__}")


def to_0x_hex(value: bytes) -> str:
    return "0x" + bytes(value).hex()
