"""Command-line interface for xdf2fieldtrip."""
import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

from xdf2fieldtrip.exceptions import XDFConversionError
from xdf2fieldtrip.resample import DEFAULT_RESAMPLE_METHOD, RESAMPLE_METHODS
from xdf2fieldtrip.types import events_to_dataframe
from xdf2fieldtrip.xdf_converter import XDFConverter, __version__

def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

def validate_arguments(input_file: str):
    """Validate command line arguments."""
    input_path = Path(input_file)
    if not input_path.exists():
        raise FileNotFoundError(f"Input file does not exist: {input_file}")

    if not input_path.suffix.lower() == '.xdf':
        raise ValueError(f"Input file must be an XDF file: {input_file}")

def format_summary(result) -> str:
    """Render the converted data and its events as plain text."""
    data = result.data
    lines = [
        f"Streams: {', '.join(result.stream_names)}",
        f"Sampling rate: {result.max_srate:.3f} Hz",
        f"Channels: {data.n_chans}",
        f"Samples: {data.n_samples}",
        f"Labels: {', '.join(data.label)}",
        f"Events: {len(result.events)}",
    ]
    if result.events:
        with pd.option_context('display.max_rows', None, 'display.width', 120):
            lines.append(events_to_dataframe(result.events).to_string(index=False))
    return '\n'.join(lines)

def main(argv=None):
    """Main function to handle command-line arguments and convert an XDF file."""
    parser = argparse.ArgumentParser(
        description="Convert a multi-stream XDF file into one continuous data block plus marker events.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s data.xdf
  %(prog)s --streamindx 1 3 --method linear data.xdf
        """
    )
    parser.add_argument("input_file", type=str, help="Path to the input XDF file.")
    parser.add_argument("--streamindx", type=int, nargs='+', default=None,
                        help="1-based indices of the streams to convert (default: all continuous streams).")
    parser.add_argument("--method", choices=RESAMPLE_METHODS, default=DEFAULT_RESAMPLE_METHOD,
                        help="Interpolation used to resample slower streams.")
    parser.add_argument("--sort-events", action="store_true", help="Order events by sample instead of by stream.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging.")

    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        # Validate arguments
        validate_arguments(args.input_file)

        logger.info(f"Converting XDF file: {args.input_file}")

        converter = XDFConverter(
            streamindx=args.streamindx,
            resample_method=args.method,
            sort_events=args.sort_events,
        )
        result = converter.convert(args.input_file)
        print(format_summary(result))

    except FileNotFoundError as e:
        logger.error(f"File error: {e}")
        sys.exit(1)
    except ValueError as e:
        logger.error(f"Validation error: {e}")
        sys.exit(1)
    except XDFConversionError as e:
        logger.error(f"Conversion error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.verbose:
            logger.exception("Full traceback:")
        sys.exit(1)

if __name__ == "__main__":
    main()
