"""
Immutable, multiply-readable view over fetched bytes.
"""

from __future__ import annotations

import codecs
import io
from typing import Union

from .exceptions import DecodingError

DEFAULT_ENCODING = "utf-8"


class FTPResource:
    """
    Content of a successfully fetched remote file.

    The bytes are held in an immutable ``bytes`` object, so every accessor
    can be called any number of times and always sees the same content.

    Example:
        ```python
        resource = await load().from_url("ftp://ftp.example.org/pub/readme.txt")
        if resource is not None:
            print(resource.as_text())
        ```
    """

    __slots__ = ("_data",)

    def __init__(self, data: Union[bytes, bytearray, memoryview]) -> None:
        self._data = bytes(data)

    def as_bytes(self) -> bytes:
        """Return the raw content."""
        return self._data

    def as_stream(self) -> io.BytesIO:
        """Return a fresh, independent binary stream positioned at the start."""
        return io.BytesIO(self._data)

    def as_text(self, encoding: str = DEFAULT_ENCODING) -> str:
        """
        Decode the full content.

        Args:
            encoding: Any codec name known to Python

        Raises:
            DecodingError: If the encoding is unknown or the bytes are invalid
        """
        try:
            codecs.lookup(encoding)
        except LookupError as e:
            raise DecodingError(f"Unknown text encoding: {encoding}", encoding) from e

        try:
            return self._data.decode(encoding)
        except UnicodeDecodeError as e:
            raise DecodingError(
                f"Unable to decode {len(self._data)} bytes as {encoding}: {e.reason}",
                encoding,
            ) from e
        except LookupError as e:
            # hex, base64 and other bytes-to-bytes codecs
            raise DecodingError(f"Not a text encoding: {encoding}", encoding) from e

    # Aliases
    as_byte_array = as_bytes
    as_input_stream = as_stream
    as_string = as_text

    @property
    def size(self) -> int:
        return len(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FTPResource):
            return NotImplemented
        return self._data == other._data

    def __hash__(self) -> int:
        return hash(self._data)

    def __repr__(self) -> str:
        return f"FTPResource(size={len(self._data)})"
