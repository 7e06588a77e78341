"""Synthetic streams shaped like the dicts returned by pyxdf.load_xdf."""

import numpy as np
import pytest


def make_stream(name, stype, srate=None, n_samples=0, t0=0.0, channels=None,
                time_series=None, time_stamps=None, first_timestamp=None):
    """Build one stream dict. ``srate`` None or 0 gives an irregular stream."""
    if time_stamps is None:
        step = 1.0 / srate if srate else 1.0
        time_stamps = t0 + np.arange(n_samples) * step
    time_stamps = np.asarray(time_stamps, dtype=float)

    channels = channels or []
    if time_series is None:
        n_chans = max(len(channels), 1)
        time_series = np.arange(len(time_stamps) * n_chans, dtype=float).reshape(len(time_stamps), n_chans)

    desc = None
    if channels:
        desc = {'channels': [{'channel': [
            {'label': [label], 'type': [stype], 'unit': ['microvolts']} for label in channels
        ]}]}

    info = {
        'name': [name],
        'type': [stype],
        'channel_count': [str(max(len(channels), 1))],
        'nominal_srate': [str(srate or 0)],
        'desc': [desc],
        'effective_srate': float(srate or 0.0),
    }
    first = time_stamps[0] if first_timestamp is None and len(time_stamps) else first_timestamp
    footer = {'info': {'first_timestamp': [str(first)]}} if first is not None else {}
    return {
        'info': info,
        'footer': footer,
        'time_stamps': time_stamps,
        'time_series': time_series,
    }


def make_markers(name, time_stamps, labels):
    return make_stream(
        name, 'Markers', time_stamps=time_stamps,
        time_series=[[label] for label in labels],
    )


@pytest.fixture
def eeg_stream():
    return make_stream('EEG', 'EEG', srate=1000.0, n_samples=5000, t0=9.0, channels=['Fz', 'Cz'])


@pytest.fixture
def slow_stream():
    return make_stream('ACC', 'ACC', srate=128.0, n_samples=500, t0=9.0, channels=['x', 'y', 'z'])


@pytest.fixture
def marker_stream():
    return make_markers('Markers', [10.0, 12.5], ['start', 'stop'])


@pytest.fixture
def recording(eeg_stream, slow_stream, marker_stream):
    return [eeg_stream, marker_stream, slow_stream]
