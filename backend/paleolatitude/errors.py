"""
Error types raised by the paleolatitude engine.

All errors are recoverable and carry structured attributes so that callers
(HTTP API, command line) can decide how to render them.
"""

from typing import Optional


class PaleolatitudeError(Exception):
    """Base class for all paleolatitude engine errors"""


class DataIntegrityError(PaleolatitudeError):
    """
    Input data is malformed: out-of-range coordinates, non-monotonic ages,
    duplicate keys or unparseable values.

    Raised while constructing datasets and rotation tables, never while
    answering a query.
    """

    def __init__(self, reason: str, record=None, index: Optional[int] = None,
                 source: Optional[str] = None):
        self.reason = reason
        self.record = record
        self.index = index
        self.source = source
        super().__init__(self._describe())

    def _describe(self) -> str:
        parts = [self.reason]
        if self.source is not None:
            parts.append(f"source={self.source}")
        if self.index is not None:
            parts.append(f"index={self.index}")
        if self.record is not None:
            parts.append(f"record={self.record!r}")
        return "; ".join(parts)


class UnknownFrameError(PaleolatitudeError, LookupError):
    """A reference frame, or a rotation path between two frames, is not known"""

    def __init__(self, reference_frame_id: str, to_frame: Optional[str] = None):
        self.reference_frame_id = reference_frame_id
        self.to_frame = to_frame
        if to_frame is None:
            message = f"unknown reference frame '{reference_frame_id}'"
        else:
            message = f"no rotation path from '{reference_frame_id}' to '{to_frame}'"
        super().__init__(message)

    @property
    def from_frame(self) -> str:
        return self.reference_frame_id


class OutOfRangeError(PaleolatitudeError):
    """Requested age lies outside the dated window of a dataset or rotation"""

    def __init__(self, reference_frame_id: str, age: float, min_age: float, max_age: float):
        self.reference_frame_id = reference_frame_id
        self.age = age
        self.min_age = min_age
        self.max_age = max_age
        super().__init__(
            f"age {age} Ma outside [{min_age}, {max_age}] Ma of '{reference_frame_id}'"
        )
