"""Records and batches produced from normalized devices."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Tuple, Union

FieldValue = Union[float, bool, str]


@dataclass(frozen=True)
class Record:
    """One time-series point: a measurement with tags, fields and a timestamp.

    Tag values are always text; field values are float, bool or str. A key is
    never both a tag and a field.
    """
    measurement: str
    tags: Dict[str, str] = field(default_factory=dict)
    fields: Dict[str, FieldValue] = field(default_factory=dict)
    time: Optional[datetime] = None

    def __post_init__(self):
        overlap = set(self.tags) & set(self.fields)
        if overlap:
            raise ValueError(f"{self.measurement}: keys used as both tag and field: {sorted(overlap)}")
        for key, value in self.tags.items():
            if not isinstance(value, str):
                raise ValueError(f"{self.measurement}: tag {key} is {type(value).__name__}, not str")


@dataclass(frozen=True)
class Batch:
    """All records produced for one poll cycle, sharing one timestamp."""
    records: Tuple[Record, ...] = ()
    time: Optional[datetime] = None

    @classmethod
    def empty(cls, time: Optional[datetime] = None) -> 'Batch':
        return cls((), time)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def by_measurement(self) -> Dict[str, List[Record]]:
        """Group records by measurement, keeping the batch order."""
        grouped: Dict[str, List[Record]] = {}
        for record in self.records:
            grouped.setdefault(record.measurement, []).append(record)
        return grouped
