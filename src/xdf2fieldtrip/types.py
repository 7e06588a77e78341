"""
Data structures produced by the XDF conversion.

The layout follows the FieldTrip raw data structure: a channel label list,
one time axis and a channels x samples matrix, optionally with the header
describing the stream the data came from.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from xdf2fieldtrip.utils import format_number

EVENT_TABLE_ORDER = ['sample', 'offset', 'duration', 'type', 'value', 'timestamp']


@dataclass(frozen=True)
class Header:
    """Channel and sample rate description of one continuous stream."""

    fs: float
    n_chans: int
    n_samples: int
    label: List[str]
    chantype: List[str]
    chanunit: List[str]
    first_time_stamp: float
    time_stamp_per_sample: float
    orig: Dict[str, Any] = field(repr=False, compare=False)
    n_samples_pre: int = 0
    n_trials: int = 1

    def __post_init__(self):
        if len(self.label) != self.n_chans:
            raise ValueError(f"Header has {len(self.label)} labels for {self.n_chans} channels")


@dataclass
class ChannelDataBlock:
    """
    Continuous data on a single time axis.

    ``trial`` is a channels x samples array. The unified block produced by
    appending several streams carries no header.
    """

    header: Optional[Header]
    label: List[str]
    time: np.ndarray
    trial: np.ndarray
    fsample: float

    def __post_init__(self):
        if self.trial.shape != (len(self.label), len(self.time)):
            raise ValueError(
                f"Data shape {self.trial.shape} does not match "
                f"{len(self.label)} channels x {len(self.time)} samples"
            )

    @property
    def n_chans(self) -> int:
        return len(self.label)

    @property
    def n_samples(self) -> int:
        return len(self.time)

    def to_dataframe(self) -> pd.DataFrame:
        """Return the block as a table with a ``time`` column and one column per channel."""
        data_dict = {'time': self.time}
        for ch, label in enumerate(self.label):
            data_dict[label] = self.trial[ch]
        return pd.DataFrame(data_dict, columns=['time'] + list(self.label))


@dataclass(frozen=True)
class Event:
    """One marker occurrence aligned to the unified time axis."""

    sample: int
    value: str
    timestamp: float
    duration: int = 1
    type: str = 'Marker'
    offset: Optional[int] = None


class LabelSeries:
    """Marker stream whose samples are strings."""

    def __init__(self, entries: Sequence[Any]):
        self.entries = entries

    def __len__(self):
        return len(self.entries)

    def value_at(self, k: int) -> str:
        entry = self.entries[k]
        if entry is None:
            raise ValueError(f"marker {k + 1} has no value")
        if isinstance(entry, (str, bytes)):
            return entry.decode() if isinstance(entry, bytes) else entry
        parts = list(entry)
        if any(part is None for part in parts):
            raise ValueError(f"marker {k + 1} has no value")
        return ', '.join(str(part) for part in parts)


class NumericSeries:
    """Marker stream whose samples are numbers, one row per marker."""

    def __init__(self, values: np.ndarray):
        self.values = values

    def __len__(self):
        return len(self.values)

    def value_at(self, k: int) -> str:
        return ' '.join(format_number(v) for v in np.atleast_1d(self.values[k]))


def marker_series(time_series: Any):
    """Decide once per stream whether its samples are labels or numbers."""
    if isinstance(time_series, np.ndarray):
        values = time_series
    else:
        try:
            values = np.asarray(time_series)
        except ValueError:
            # ragged entries cannot be numeric
            return LabelSeries(time_series)
    if values.dtype.kind in 'biuf':
        return NumericSeries(values)
    return LabelSeries(time_series)


def events_to_dataframe(events: Sequence[Event]) -> pd.DataFrame:
    """Return events as a table, one row per event."""
    rows = [{key: getattr(event, key) for key in EVENT_TABLE_ORDER} for event in events]
    return pd.DataFrame(rows, columns=EVENT_TABLE_ORDER)
