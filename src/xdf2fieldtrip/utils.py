import logging
import math
from typing import Any, Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)

UNKNOWN = 'unknown'


def info_value(info: Dict[str, Any], key: str, default: Any = None) -> Any:
    """
    Return a single value from a pyxdf info dict.

    pyxdf stores most header fields as one-element lists of strings
    (``info['name'] == ['EEG']``) but adds a few plain values of its own,
    such as ``effective_srate``.
    """
    if not info or key not in info:
        return default
    value = info[key]
    if isinstance(value, list):
        return value[0] if value else default
    return value


def stream_name(stream: Dict[str, Any], default: str = 'Unknown') -> str:
    name = info_value(stream.get('info', {}), 'name', default)
    return default if name is None else str(name)


def stream_type(stream: Dict[str, Any]) -> str:
    stype = info_value(stream.get('info', {}), 'type', '')
    return '' if stype is None else str(stype)


def effective_srate(stream: Dict[str, Any]) -> Optional[float]:
    """
    Return the measured sampling rate, or None for irregular streams.

    pyxdf writes ``effective_srate`` for every stream and uses 0.0 when the
    stream has no regular rate, so only a positive finite value counts.
    Without dejittering pyxdf derives a rate for irregular streams too, so a
    declared nominal rate of zero always marks the stream as irregular.
    """
    info = stream.get('info', {})
    if _as_float(info_value(info, 'nominal_srate')) == 0:
        return None
    srate = _as_float(info_value(info, 'effective_srate'))
    if srate is None or not math.isfinite(srate) or srate <= 0:
        return None
    return srate


def _as_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def first_timestamp(stream: Dict[str, Any]) -> float:
    """
    Return the first time stamp recorded for the stream.

    Looks in the stream info first, then in the footer written at the end of
    the recording, and finally falls back to the first loaded time stamp.
    """
    value = info_value(stream.get('info', {}), 'first_timestamp')
    if value is None:
        footer = stream.get('footer') or {}
        value = info_value(footer.get('info', {}), 'first_timestamp')
    if value is None:
        time_stamps = stream.get('time_stamps')
        if time_stamps is None or len(time_stamps) == 0:
            raise ValueError(f"Stream '{stream_name(stream)}' has no first time stamp")
        value = time_stamps[0]
    return float(value)


def channel_descriptors(info: Dict[str, Any]) -> List[Dict[str, str]]:
    """
    Extract label, type and unit for every channel described in the stream info.

    Streams without a usable description get numbered ``Channel_<n>`` labels,
    padded up to the declared channel count.
    """
    descriptors = []
    desc = info_value(info, 'desc')
    if hasattr(desc, 'get') and desc.get('channels'):
        channels = desc['channels']
        channels = channels[0] if isinstance(channels, list) else channels
        if hasattr(channels, 'get'):
            for ch_info in channels.get('channel') or []:
                if not hasattr(ch_info, 'get'):
                    continue
                descriptors.append({
                    'label': info_value(ch_info, 'label') or f"Channel_{len(descriptors) + 1}",
                    'type': info_value(ch_info, 'type') or UNKNOWN,
                    'unit': info_value(ch_info, 'unit') or UNKNOWN,
                })

    ch_count = int(info_value(info, 'channel_count', 0) or 0)
    if len(descriptors) < ch_count:
        if descriptors:
            logger.warning(f"Stream '{info_value(info, 'name')}' describes {len(descriptors)} of {ch_count} channels")
        while len(descriptors) < ch_count:
            descriptors.append({'label': f"Channel_{len(descriptors) + 1}", 'type': UNKNOWN, 'unit': UNKNOWN})
    return descriptors


def format_number(value: Any) -> str:
    """
    Format a numeric marker value the way MATLAB's num2str does for scalars.

    Integers are written without decimals, other values with four significant
    digits beyond the integer part (at least five in total).
    """
    value = float(value)
    if math.isnan(value):
        return 'NaN'
    if math.isinf(value):
        return 'Inf' if value > 0 else '-Inf'
    if value.is_integer():
        return str(int(value))
    digits = math.floor(math.log10(abs(value))) if value else 0
    digits = min(max(digits + 5, 5), 16)
    return f"{value:.{digits}g}"


def as_time_axis(time_stamps: Any) -> np.ndarray:
    return np.asarray(time_stamps, dtype=float).reshape(-1)


def round_half_away(value: float) -> int:
    """Round to the nearest integer, with halves rounded away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))
