"""
XDF to FieldTrip Converter Package

Converts multi-stream XDF files into one continuous data block and a list of marker events.
"""

__author__ = "XDF Ecosystem Team"

from .exceptions import (
    DataIngestionError,
    EmptySelectionError,
    MarkerStreamError,
    MissingStreamError,
    XDFConversionError,
)
from .types import ChannelDataBlock, Event, Header, events_to_dataframe
from .xdf_converter import ConversionResult, XDFConverter, __version__, xdf2fieldtrip

__all__ = [
    'XDFConverter',
    'ConversionResult',
    'xdf2fieldtrip',
    'ChannelDataBlock',
    'Event',
    'Header',
    'events_to_dataframe',
    'XDFConversionError',
    'DataIngestionError',
    'MissingStreamError',
    'EmptySelectionError',
    'MarkerStreamError',
    '__version__'
]
