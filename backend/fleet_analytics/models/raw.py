"""
Raw telemetry model (source-format, unnormalized).

Adapters load upstream responses and CSV exports into this structure
before normalization.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class RawSeries:
    """A block of telemetry rows exactly as the source delivered them."""

    columns: list[str]
    values: list[list[Any]]

    source: str = "unknown"
    device_id: Optional[str] = None

    _column_index: Optional[dict[str, int]] = field(default=None, repr=False)

    @property
    def column_index(self) -> dict[str, int]:
        """Column name -> position. The first occurrence of a name wins."""
        if self._column_index is None:
            index: dict[str, int] = {}
            for i, name in enumerate(self.columns):
                index.setdefault(name, i)
            self._column_index = index
        return self._column_index

    def __len__(self) -> int:
        return len(self.values)

    @classmethod
    def empty(cls, source: str = "unknown", device_id: Optional[str] = None) -> "RawSeries":
        return cls(columns=[], values=[], source=source, device_id=device_id)
