from enum import Enum


class SchemeRevision(Enum):
    """Nested typed-data signing revisions, keyed by their 4-byte support identifier."""
    NestedTypedDataSignV1 = bytes.fromhex("77390001")

    @property
    def identifier(self) -> bytes:
        return self.value

    @classmethod
    def from_identifier(cls, value):
        try:
            return cls(bytes(value))
        except ValueError:
            raise ValueError(f"Unsupported scheme revision: 0x{bytes(value).hex()}")


#: Revision implemented by this package.
CURRENT_REVISION = SchemeRevision.NestedTypedDataSignV1
