"""
Resampling and appending of channel data blocks.

Resampling maps a block onto an arbitrary target time axis by interpolation,
which also aligns it sample by sample with the stream that owns that axis.
Target time stamps outside the span of the source data are set to NaN.
"""

import logging
from typing import Optional, Sequence

import numpy as np
from scipy.interpolate import PchipInterpolator, interp1d

from xdf2fieldtrip.types import ChannelDataBlock
from xdf2fieldtrip.utils import as_time_axis

logger = logging.getLogger(__name__)

RESAMPLE_METHODS = ('pchip', 'linear', 'nearest', 'cubic')
DEFAULT_RESAMPLE_METHOD = 'pchip'


def _interpolate(x: np.ndarray, y: np.ndarray, new_x: np.ndarray, kind: str = DEFAULT_RESAMPLE_METHOD) -> np.ndarray:
    """Interpolate ``y`` (samples along axis 1) from ``x`` onto ``new_x``."""
    if kind == 'pchip':
        f = PchipInterpolator(x, y, axis=1, extrapolate=False)
        return f(new_x)
    f = interp1d(
        x,
        y,
        kind=kind,
        axis=1,
        assume_sorted=True,
        bounds_error=False,
        fill_value=np.nan,
    )
    return f(new_x)


def resample_block(block: ChannelDataBlock, time: Sequence[float], method: str = DEFAULT_RESAMPLE_METHOD) -> ChannelDataBlock:
    """
    Resample a block onto the given time axis.

    The returned block has exactly one sample per target time stamp and uses
    the target time stamps as its own time axis.
    """
    if method not in RESAMPLE_METHODS:
        raise ValueError(f"Unknown resample method '{method}', expected one of {', '.join(RESAMPLE_METHODS)}")
    if block.n_samples < 2:
        raise ValueError(f"Need at least two samples to resample, got {block.n_samples}")

    new_time = as_time_axis(time)
    old_time = block.time
    trial = np.asarray(block.trial, dtype=float)
    order = np.argsort(old_time, kind='stable')
    if np.any(order != np.arange(len(order))):
        logger.debug("Sorting source time stamps before resampling")
        old_time = old_time[order]
        trial = trial[:, order]

    new_trial = _interpolate(old_time, trial, new_time, kind=method)

    if len(new_time) > 1:
        fsample = (len(new_time) - 1) / (new_time[-1] - new_time[0])
    else:
        fsample = block.fsample
    return ChannelDataBlock(
        header=block.header,
        label=list(block.label),
        time=new_time,
        trial=new_trial,
        fsample=fsample,
    )


def append_blocks(blocks: Sequence[ChannelDataBlock], fsample: Optional[float] = None) -> ChannelDataBlock:
    """
    Concatenate blocks that share one time axis along the channel dimension.

    Raises:
        ValueError: if no blocks are given or their time axes differ.
    """
    if not blocks:
        raise ValueError("No data blocks to append")
    time = blocks[0].time
    for block in blocks[1:]:
        if len(block.time) != len(time) or not np.array_equal(block.time, time):
            raise ValueError("Cannot append data blocks with different time axes")

    label = [lbl for block in blocks for lbl in block.label]
    trial = np.concatenate([np.asarray(block.trial, dtype=float) for block in blocks], axis=0)
    return ChannelDataBlock(
        header=None,
        label=label,
        time=time,
        trial=trial,
        fsample=blocks[0].fsample if fsample is None else fsample,
    )
