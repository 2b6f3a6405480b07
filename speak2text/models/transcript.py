"""Append-only transcript."""

from typing import List, Tuple

from .segment import Segment


class Transcript:
    """Ordered sequence of segments, rendered with a single space after each."""

    SEPARATOR = " "

    def __init__(self):
        self._segments: List[Segment] = []

    def append(self, segment: Segment) -> None:
        self._segments.append(segment)

    def clear(self) -> None:
        self._segments = []

    @property
    def segments(self) -> Tuple[Segment, ...]:
        return tuple(self._segments)

    @property
    def text(self) -> str:
        return "".join(segment.text + self.SEPARATOR for segment in self._segments)

    def is_empty(self) -> bool:
        return not self._segments

    def __len__(self) -> int:
        return len(self._segments)

    def __str__(self) -> str:
        return self.text
