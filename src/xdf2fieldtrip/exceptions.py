"""Exceptions raised while converting XDF recordings."""


class XDFConversionError(Exception):
    """Base class for conversion failures."""

    pass


class DataIngestionError(XDFConversionError):
    """The XDF file could not be read or holds no streams."""

    pass


class MissingStreamError(XDFConversionError):
    """No EEG stream is present to anchor the event sample indices."""

    pass


class EmptySelectionError(XDFConversionError):
    """Stream selection left no continuous stream to convert."""

    pass


class MarkerStreamError(XDFConversionError):
    """A marker stream could not be interpreted as events."""

    def __init__(self, stream_name: str, message: str):
        super().__init__(f'Could not interpret event stream named "{stream_name}": {message}')
        self.stream_name = stream_name
