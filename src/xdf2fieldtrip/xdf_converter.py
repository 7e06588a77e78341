""" xdf_converter.py - Conversion of multi-stream XDF recordings into FieldTrip style raw data
    Copyright (C) 2025 Janik Pawlowski

    This program is free software: you can redistribute it and/or modify
    it under the terms of the GNU General Public License as published by
    the Free Software Foundation, either version 3 of the License, or
    (at your option) any later version.

    This program is distributed in the hope that it will be useful,
    but WITHOUT ANY WARRANTY; without even the implied warranty of
    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
    GNU General Public License for more details.

    You should have received a copy of the GNU General Public License
    along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

__version__ = "0.1.0"

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pyxdf

from xdf2fieldtrip.exceptions import (
    DataIngestionError,
    EmptySelectionError,
    MarkerStreamError,
    MissingStreamError,
)
from xdf2fieldtrip.resample import (
    DEFAULT_RESAMPLE_METHOD,
    RESAMPLE_METHODS,
    append_blocks,
    resample_block,
)
from xdf2fieldtrip.types import ChannelDataBlock, Event, Header, marker_series
from xdf2fieldtrip.utils import (
    as_time_axis,
    channel_descriptors,
    effective_srate,
    first_timestamp,
    round_half_away,
    stream_name,
    stream_type,
)

logger = logging.getLogger(__name__)


EEG_STREAM_TYPE = 'EEG'
MARKER_STREAM_TYPE = 'Markers'
MARKER_EVENT_TYPE = 'Marker'


def classify_streams(streams: Sequence[Dict[str, Any]]) -> List[bool]:
    """
    Return for every stream whether it holds continuous (regularly sampled) data.
    """
    continuous = [effective_srate(stream) is not None for stream in streams]
    for i, (stream, is_continuous) in enumerate(zip(streams, continuous), start=1):
        kind = 'continuous' if is_continuous else 'non-continuous'
        logger.info(f"stream {i} contains {kind} {stream_name(stream)} data")
    return continuous


def resolve_eeg_start(streams: Sequence[Dict[str, Any]], eeg_type: str = EEG_STREAM_TYPE) -> float:
    """
    Return the earliest first time stamp across all EEG streams.

    Raises:
        MissingStreamError: if the recording contains no EEG stream.
    """
    starts = []
    for stream in streams:
        if stream_type(stream) != eeg_type:
            continue
        try:
            starts.append(first_timestamp(stream))
        except ValueError as e:
            logger.warning(f"Skipping {eeg_type} stream without a usable start time: {e}")
    if not starts:
        available = ', '.join(f"{stream_name(s)} ({stream_type(s)})" for s in streams)
        raise MissingStreamError(
            f"Data does not contain an {eeg_type} stream\n"
            f"Available streams: [{available}]"
        )
    return min(starts)


def select_streams(continuous: Sequence[bool], streamindx: Optional[Sequence[int]] = None) -> List[bool]:
    """
    Combine the continuous mask with an optional list of 1-based stream indices.

    Raises:
        EmptySelectionError: if no continuous stream remains selected.
    """
    if not streamindx:
        selected = list(continuous)
    else:
        wanted = set()
        for indx in streamindx:
            if 1 <= int(indx) <= len(continuous):
                wanted.add(int(indx))
            else:
                logger.warning(f"Ignoring stream index {indx}, the file contains {len(continuous)} streams")
        selected = [is_continuous and (i in wanted) for i, is_continuous in enumerate(continuous, start=1)]

    if not any(selected):
        raise EmptySelectionError("no continuous streams were selected")
    return selected


def build_header(stream: Dict[str, Any]) -> Header:
    """
    Build the channel and sample rate description of a continuous stream.

    Channel labels are prefixed with the stream name so that channels of
    different streams stay distinct once they are appended.
    """
    info = stream['info']
    prefix = stream_name(stream)
    descriptors = channel_descriptors(info)
    time_stamps = as_time_axis(stream['time_stamps'])
    n_samples = len(time_stamps)

    if n_samples > 1:
        time_stamp_per_sample = (time_stamps[-1] - time_stamps[0]) / (n_samples - 1)
    else:
        logger.debug(f"Stream '{prefix}' has {n_samples} samples, time stamp per sample is undefined")
        time_stamp_per_sample = math.nan

    return Header(
        fs=effective_srate(stream),
        n_chans=len(descriptors),
        n_samples=n_samples,
        label=[f"{prefix}_{ch['label']}" for ch in descriptors],
        chantype=[ch['type'] for ch in descriptors],
        chanunit=[ch['unit'] for ch in descriptors],
        first_time_stamp=float(time_stamps[0]) if n_samples else math.nan,
        time_stamp_per_sample=time_stamp_per_sample,
        orig=info,
    )


def build_block(stream: Dict[str, Any]) -> ChannelDataBlock:
    """Wrap a continuous stream and its header into a channels x samples block."""
    header = build_header(stream)
    trial = np.asarray(stream['time_series'])
    if trial.ndim == 1:
        trial = trial.reshape(-1, 1)
    return ChannelDataBlock(
        header=header,
        label=list(header.label),
        time=as_time_axis(stream['time_stamps']),
        trial=trial.T,
        fsample=header.fs,
    )


def unify_blocks(
    blocks: Sequence[ChannelDataBlock],
    srates: Sequence[float],
    method: str = DEFAULT_RESAMPLE_METHOD,
) -> Tuple[ChannelDataBlock, float, int]:
    """
    Bring all blocks onto the time axis of the fastest stream and append them.

    The first stream with the highest sampling rate is the reference. A single
    block is returned as is.

    Returns:
        (data, max_srate, indx): the unified block, the reference sampling rate
        and the position of the reference block in ``blocks``.
    """
    if not blocks:
        raise EmptySelectionError("no continuous streams were selected")
    indx = int(np.argmax(srates))
    max_srate = float(srates[indx])

    if len(blocks) == 1:
        return blocks[0], max_srate, indx

    reference = blocks[indx]
    aligned = []
    for i, block in enumerate(blocks):
        if i == indx:
            aligned.append(block)
            continue
        name = stream_name({'info': block.header.orig}) if block.header else f"block {i + 1}"
        logger.info(f"resampling {name}")
        aligned.append(resample_block(block, reference.time, method=method))

    return append_blocks(aligned, fsample=max_srate), max_srate, indx


def extract_stream_events(stream: Dict[str, Any], eeg_start: float, max_srate: float) -> List[Event]:
    """
    Convert the markers of one stream into events on the unified time axis.

    Raises:
        MarkerStreamError: if the stream cannot be interpreted.
    """
    name = stream_name(stream)
    try:
        time_stamps = as_time_axis(stream['time_stamps'])
        series = marker_series(stream['time_series'])
        if len(series) != len(time_stamps):
            raise ValueError(f"{len(series)} markers for {len(time_stamps)} time stamps")

        events = []
        for k, timestamp in enumerate(time_stamps):
            if not math.isfinite(timestamp):
                raise ValueError(f"marker {k + 1} has time stamp {timestamp}")
            events.append(Event(
                sample=round_half_away((timestamp - eeg_start) * max_srate),
                value=series.value_at(k),
                timestamp=float(timestamp),
                type=MARKER_EVENT_TYPE,
            ))
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise MarkerStreamError(name, str(e)) from e
    return events


def extract_events(
    marker_streams: Sequence[Dict[str, Any]],
    eeg_start: float,
    max_srate: float,
    sort_events: bool = False,
) -> List[Event]:
    """
    Collect the events of all marker streams in stream order.

    Streams that cannot be interpreted are skipped with a warning. With
    ``sort_events`` the result is ordered by sample index instead.
    """
    events = []
    for stream in marker_streams:
        try:
            stream_events = extract_stream_events(stream, eeg_start, max_srate)
        except MarkerStreamError as e:
            logger.warning(str(e))
            continue
        logger.debug(f"Extracted {len(stream_events)} events from '{stream_name(stream)}'")
        events.extend(stream_events)

    if sort_events:
        events.sort(key=lambda event: event.sample)
    return events


@dataclass
class ConversionResult:
    """Unified continuous data and marker events of one XDF file."""

    data: ChannelDataBlock
    events: List[Event]
    max_srate: float
    eeg_start: float
    stream_names: List[str] = field(default_factory=list)


class XDFConverter:
    """
    Converts XDF files into one continuous data block plus a list of marker events.
    Handles stream classification, selection, resampling to the fastest stream and
    marker to sample alignment.
    """

    def __init__(self, streamindx: Optional[Sequence[int]] = None, **kwargs):
        """
        Initialize converter with an optional 1-based stream index filter.
        """
        self.streamindx = list(streamindx) if streamindx is not None else None
        self.eeg_type = kwargs.get('eeg_type', EEG_STREAM_TYPE)
        self.marker_type = kwargs.get('marker_type', MARKER_STREAM_TYPE)
        self.resample_method = kwargs.get('resample_method', DEFAULT_RESAMPLE_METHOD)
        self.sort_events = kwargs.get('sort_events', False)
        self.dejitter_timestamps = kwargs.get('dejitter_timestamps', True)

        if self.resample_method not in RESAMPLE_METHODS:
            raise ValueError(
                f"Unknown resample method '{self.resample_method}', "
                f"expected one of {', '.join(RESAMPLE_METHODS)}"
            )

        self.streams = None
        self.header = None

    def load_xdf(self, xdf_file) -> List[Dict[str, Any]]:
        """
        Load all streams of an XDF file.
        """
        xdf_path = Path(xdf_file)
        if not xdf_path.exists():
            raise DataIngestionError(f"XDF file not found: {xdf_file}")
        if not xdf_path.is_file():
            raise DataIngestionError(f"Path exists but is not a file: {xdf_file}")

        logger.info(f"Loading XDF file: {xdf_file}")
        try:
            self.streams, self.header = pyxdf.load_xdf(
                str(xdf_path), dejitter_timestamps=self.dejitter_timestamps
            )
        except Exception as e:
            raise DataIngestionError(f"Failed to load XDF file {xdf_file}: {type(e).__name__}: {e}") from e

        if not self.streams:
            raise DataIngestionError(f"XDF file contains no streams: {xdf_file}")
        logger.info(f"Loaded {len(self.streams)} streams")
        return self.streams

    def convert_streams(self, streams: Sequence[Dict[str, Any]]) -> ConversionResult:
        """
        Run the conversion on already loaded streams.
        """
        continuous = classify_streams(streams)
        eeg_start = resolve_eeg_start(streams, eeg_type=self.eeg_type)
        marker_streams = [stream for stream in streams if stream_type(stream) == self.marker_type]

        selected = select_streams(continuous, self.streamindx)
        selected_streams = [stream for stream, keep in zip(streams, selected) if keep]

        blocks = [build_block(stream) for stream in selected_streams]
        srates = [block.header.fs for block in blocks]
        data, max_srate, indx = unify_blocks(blocks, srates, method=self.resample_method)
        logger.info(
            f"Unified {len(blocks)} streams on the time axis of '{stream_name(selected_streams[indx])}' "
            f"({max_srate:.3f} Hz, {data.n_chans} channels, {data.n_samples} samples)"
        )

        events = extract_events(marker_streams, eeg_start, max_srate, sort_events=self.sort_events)
        logger.info(f"Extracted {len(events)} events from {len(marker_streams)} marker streams")

        return ConversionResult(
            data=data,
            events=events,
            max_srate=max_srate,
            eeg_start=eeg_start,
            stream_names=[stream_name(stream) for stream in selected_streams],
        )

    def convert(self, xdf_file) -> ConversionResult:
        """
        Complete conversion pipeline: load the file, then convert its streams.
        """
        streams = self.load_xdf(xdf_file)
        return self.convert_streams(streams)


# Convenience function
def xdf2fieldtrip(xdf_file, streamindx: Optional[Sequence[int]] = None, **kwargs) -> Tuple[ChannelDataBlock, List[Event]]:
    """
    Read an XDF file and return its continuous data and marker events.

    Args:
        xdf_file: Path to XDF file
        streamindx: 1-based indices of the streams to convert (default is all continuous streams)
        **kwargs: Additional arguments passed to XDFConverter
    """
    converter = XDFConverter(streamindx=streamindx, **kwargs)
    result = converter.convert(xdf_file)
    return result.data, result.events
