"""Append buffer that batches a whole screen refresh into one write.

Writing escape sequences piecemeal makes the terminal flicker while a frame
is half drawn. A :class:`RenderBuffer` collects every byte of one refresh
and hands them to the output device in a single call.
"""

from __future__ import annotations

from typing import Callable, Optional

from cline.errors import AllocationError


class RenderBuffer:
    """Single-use growable byte buffer.

    Parameters
    ----------
    max_size:
        Optional upper bound on the buffer length. Growing past it fails the
        same way an exhausted allocator does.
    """

    def __init__(self, max_size: Optional[int] = None) -> None:
        self._data: Optional[bytearray] = bytearray()
        self._max_size = max_size

    def __len__(self) -> int:
        return 0 if self._data is None else len(self._data)

    @property
    def destroyed(self) -> bool:
        return self._data is None

    def _require_data(self) -> bytearray:
        if self._data is None:
            raise ValueError("RenderBuffer used after destroy()")
        return self._data

    def append(self, data: bytes) -> None:
        """Append *data* after the existing content.

        Raises :class:`AllocationError` and leaves the content unchanged when
        the buffer cannot grow.
        """
        buf = self._require_data()
        if self._max_size is not None and len(buf) + len(data) > self._max_size:
            raise AllocationError(
                f"Render buffer cannot grow past {self._max_size} bytes"
            )
        try:
            buf += data
        except MemoryError as e:
            raise AllocationError("Out of memory growing render buffer") from e

    def flush(self, write: Callable[[bytes], None]) -> None:
        """Pass the whole content to *write* in one call, then destroy."""
        buf = self._require_data()
        try:
            write(bytes(buf))
        finally:
            self.destroy()

    def destroy(self) -> None:
        self._data = None
