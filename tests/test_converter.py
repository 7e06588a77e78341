import logging

import numpy as np
import pytest

import pyxdf

from conftest import make_markers, make_stream
from xdf2fieldtrip import (
    ConversionResult,
    DataIngestionError,
    EmptySelectionError,
    MissingStreamError,
    XDFConverter,
    xdf2fieldtrip,
)
from xdf2fieldtrip.__main__ import format_summary, main


@pytest.fixture
def xdf_file(tmp_path):
    path = tmp_path / 'recording.xdf'
    path.write_bytes(b'XDF:')
    return path


@pytest.fixture
def fake_load(monkeypatch):
    """Replace pyxdf.load_xdf with one returning the given streams."""
    calls = []

    def install(streams):
        def load_xdf(filename, **kwargs):
            calls.append((filename, kwargs))
            return streams, {'info': {'version': ['1.0']}}
        monkeypatch.setattr(pyxdf, 'load_xdf', load_xdf)
        return calls

    return install


def test_convert_recording(xdf_file, fake_load, recording):
    calls = fake_load(recording)

    result = XDFConverter().convert(xdf_file)

    assert isinstance(result, ConversionResult)
    assert calls[0][0] == str(xdf_file)
    assert calls[0][1] == {'dejitter_timestamps': True}
    assert result.stream_names == ['EEG', 'ACC']
    assert result.max_srate == 1000.0
    assert result.eeg_start == 9.0
    assert result.data.n_samples == 5000
    assert result.data.n_chans == 5
    assert result.data.label == ['EEG_Fz', 'EEG_Cz', 'ACC_x', 'ACC_y', 'ACC_z']
    assert [e.sample for e in result.events] == [1000, 3500]


def test_xdf2fieldtrip_returns_data_and_events(xdf_file, fake_load, recording):
    fake_load(recording)

    data, events = xdf2fieldtrip(xdf_file, streamindx=[1])

    assert data.header is not None
    assert data.label == ['EEG_Fz', 'EEG_Cz']
    assert data.n_samples == 5000
    assert [e.value for e in events] == ['start', 'stop']


def test_streamindx_does_not_filter_marker_streams(recording):
    result = XDFConverter(streamindx=[3]).convert_streams(recording)

    assert result.stream_names == ['ACC']
    assert result.max_srate == 128.0
    assert result.data.n_samples == 500
    # samples follow the rate of the selected stream, anchored at the EEG start
    assert [e.sample for e in result.events] == [128, 448]


def test_missing_eeg_stream_fails_before_markers(slow_stream, monkeypatch):
    touched = []
    monkeypatch.setattr(
        'xdf2fieldtrip.xdf_converter.extract_events',
        lambda *args, **kwargs: touched.append(args) or [],
    )
    with pytest.raises(MissingStreamError):
        XDFConverter().convert_streams([slow_stream, make_markers('Markers', [1.0], ['a'])])
    assert touched == []


def test_selecting_only_markers_fails(recording):
    with pytest.raises(EmptySelectionError):
        XDFConverter(streamindx=[2]).convert_streams(recording)


def test_broken_marker_stream_keeps_continuous_output(recording, caplog):
    broken = make_markers('Broken', [10.0, 11.0], ['a'])
    broken['time_series'] = [['a']]

    with caplog.at_level(logging.WARNING):
        result = XDFConverter().convert_streams(recording + [broken])

    assert result.data.n_chans == 5
    assert [e.value for e in result.events] == ['start', 'stop']
    assert 'Broken' in caplog.text


def test_custom_stream_types():
    streams = [
        make_stream('Brain', 'ExG', srate=250.0, n_samples=250, t0=1.0, channels=['c1']),
        make_markers('Triggers', [1.5], ['go']),
    ]
    streams[1]['info']['type'] = ['Events']

    result = XDFConverter(eeg_type='ExG', marker_type='Events').convert_streams(streams)
    assert [e.sample for e in result.events] == [125]


def test_sorted_events(recording):
    late = make_markers('Late', [9.5], ['first'])
    result = XDFConverter(sort_events=True).convert_streams(recording + [late])
    assert [e.value for e in result.events] == ['first', 'start', 'stop']


def test_invalid_resample_method():
    with pytest.raises(ValueError, match='Unknown resample method'):
        XDFConverter(resample_method='spline')


def test_load_missing_file(tmp_path):
    with pytest.raises(DataIngestionError, match='not found'):
        XDFConverter().load_xdf(tmp_path / 'missing.xdf')


def test_load_directory(tmp_path):
    with pytest.raises(DataIngestionError, match='not a file'):
        XDFConverter().load_xdf(tmp_path)


def test_load_wraps_parser_errors(xdf_file, monkeypatch):
    def load_xdf(filename, **kwargs):
        raise OSError('invalid XDF file')
    monkeypatch.setattr(pyxdf, 'load_xdf', load_xdf)

    with pytest.raises(DataIngestionError, match='invalid XDF file') as excinfo:
        XDFConverter().load_xdf(xdf_file)
    assert isinstance(excinfo.value.__cause__, OSError)


def test_load_empty_file(xdf_file, fake_load):
    fake_load([])
    with pytest.raises(DataIngestionError, match='no streams'):
        XDFConverter().load_xdf(xdf_file)


def test_format_summary(recording):
    result = XDFConverter().convert_streams(recording)
    summary = format_summary(result)
    assert 'Sampling rate: 1000.000 Hz' in summary
    assert 'Channels: 5' in summary
    assert 'Events: 2' in summary
    assert 'start' in summary


def test_cli_prints_summary(xdf_file, fake_load, recording, capsys):
    calls = fake_load(recording)

    main([str(xdf_file), '--streamindx', '1', '--method', 'linear'])

    out = capsys.readouterr().out
    assert 'Streams: EEG' in out
    assert 'Channels: 2' in out
    assert calls


def test_cli_rejects_non_xdf_file(tmp_path):
    path = tmp_path / 'recording.txt'
    path.write_text('')
    with pytest.raises(SystemExit) as excinfo:
        main([str(path)])
    assert excinfo.value.code == 1


def test_cli_exits_on_conversion_error(xdf_file, fake_load, slow_stream):
    fake_load([slow_stream])
    with pytest.raises(SystemExit) as excinfo:
        main([str(xdf_file)])
    assert excinfo.value.code == 1


def test_unified_time_axis_matches_reference(recording):
    result = XDFConverter(resample_method='linear').convert_streams(recording)
    np.testing.assert_array_equal(result.data.time, recording[0]['time_stamps'])
    assert np.isnan(result.data.trial[2:, -1]).all()


def test_convert_without_dejittering(recording, fake_load, xdf_file):
    markers = recording[1]
    ts = markers['time_stamps']
    markers['info']['effective_srate'] = len(ts) / (ts[-1] - ts[0])
    calls = fake_load(recording)

    result = XDFConverter(dejitter_timestamps=False).convert(xdf_file)

    assert calls[0][1] == {'dejitter_timestamps': False}
    assert result.stream_names == ['EEG', 'ACC']
    assert result.max_srate == 1000.0
    assert [e.value for e in result.events] == ['start', 'stop']


def test_empty_streamindx_converts_all_streams(recording):
    result = XDFConverter(streamindx=[]).convert_streams(recording)
    assert result.stream_names == ['EEG', 'ACC']
