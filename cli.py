"""bmp-decode: decode a Windows or OS/2 BMP file and report what was found.

With ``-o`` the decoded scanlines (top row first, palette indices or packed
RGB samples, no header) are written to the given file.
"""
import argparse
import logging
import sys

import config
from bmp_errors import FormatError, NotABitmap
from bmp_parser import BMPParser
from sinks import ListSink, RawFileSink
from utils import format_metadata

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog='bmp-decode', description=__doc__)
    parser.add_argument('input', help='BMP file to decode')
    parser.add_argument(
        '-o',
        '--output',
        help='write the decoded raw scanlines to this file',
    )
    parser.add_argument(
        '--pad-rle-lines',
        action='store_true',
        default=None,
        help='move to the next row on an RLE end-of-line escape',
    )
    parser.add_argument(
        '-v',
        '--verbose',
        action='count',
        default=0,
        help='more logging, repeat for debug output',
    )
    return parser.parse_args(argv)


def _log_level(verbose):
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return getattr(logging, config.LOG_LEVEL, logging.WARNING)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=_log_level(args.verbose),
        format='%(levelname)s %(name)s: %(message)s',
    )
    options = config.DecodeOptions.from_env(rle_pad_lines=args.pad_rle_lines)

    try:
        parser = BMPParser(args.input, options)
        parser.open()
    except OSError as exc:
        print(f"{args.input}: Cannot open input file ({exc}).", file=sys.stderr)
        return -1

    sink = RawFileSink(args.output) if args.output else ListSink()
    try:
        parser.load()
        print(format_metadata(parser.metadata), end='')
        report = parser.decode(sink)
    except NotABitmap:
        # not an error for the caller, the file is simply skipped
        print(f"{args.input}: File is not BMP.", file=sys.stderr)
        return 0
    except FormatError as exc:
        print(f"{args.input}: {exc}.", file=sys.stderr)
        return 1
    except OSError as exc:
        if args.output and exc.filename == args.output:
            print(f"{args.output}: Cannot open file for output ({exc}).", file=sys.stderr)
        else:
            print(f"{args.input}: Read error ({exc}).", file=sys.stderr)
        return -1
    finally:
        sink.close()
        parser.close()

    for warning in report.warnings:
        print(f"{args.input}: {warning}", file=sys.stderr)
    print(f"rows_written: {report.rows_written}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
