"""Helpers for payload buffers holding candidate data."""

from typing import Optional

_ZEROS = bytes(1 << 20)


def scrub(buffer: Optional[bytearray]) -> None:
    """Overwrite a buffer with zeros in place."""
    if not buffer:
        return
    view = memoryview(buffer)
    try:
        for start in range(0, len(buffer), len(_ZEROS)):
            end = min(start + len(_ZEROS), len(buffer))
            view[start:end] = _ZEROS[: end - start]
    finally:
        view.release()


__all__ = ["scrub"]
