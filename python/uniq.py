#!/usr/bin/env python3
"""
Name: uniq
Description: report or filter out repeated lines in a file
Author: Jonathan Feinberg, jdf@pobox.com (Original Perl Author)
License: perl
"""

import sys
import os
import argparse
import re
import itertools
from enum import Enum
from typing import NamedTuple, Optional

# Constants
EX_SUCCESS = 0
EX_FAILURE = 1

# A field is a maximal run of bytes outside this set. Newline is not in it,
# the terminator is stripped before fields are counted.
FIELD_RE = re.compile(rb'[^ \t\v\f\r]+')

class Mode(Enum):
    ALL = 0        # neither -d nor -u: every run, once
    REPEATED = 1   # -d
    UNIQUE = 2     # -u
    NONE = 3       # -d and -u: nothing at all

class UniqConfig(NamedTuple):
    """Options fixed for a whole pass over the input."""
    mode: Mode = Mode.ALL
    ignore_case: bool = False
    count: bool = False
    skip_fields: int = 0
    skip_chars: int = 0

    @classmethod
    def from_args(cls, args):
        """Resolves the -d/-u combination once, before any line is read."""
        if args.repeated and args.unique:
            mode = Mode.NONE
        elif args.repeated:
            mode = Mode.REPEATED
        elif args.unique:
            mode = Mode.UNIQUE
        else:
            mode = Mode.ALL
        return cls(mode=mode,
                   ignore_case=args.ignore_case,
                   count=args.count,
                   skip_fields=args.skip_fields,
                   skip_chars=args.skip_chars)

def get_comparison_key(line: bytes, skip_fields: int, skip_chars: int) -> bytes:
    """
    Extracts the part of the line to be used for comparison,
    respecting the -f (fields) and -s (chars) options.

    Skipping more fields than the line has falls back to the start of its
    last field. A line with no fields at all has an empty key.
    """
    if line.endswith(b'\n'):
        line = line[:-1]

    # 1. Skip fields: the key starts at the first byte of field N.
    if skip_fields > 0:
        starts = [m.start() for m in FIELD_RE.finditer(line)]
        if not starts:
            return b''
        if skip_fields >= len(starts):
            skip_fields = len(starts) - 1
        line = line[starts[skip_fields]:]

    # 2. Skip characters from the remainder, never past its end.
    if skip_chars > 0:
        line = line[min(skip_chars, len(line)):]

    return line

def format_record(line: bytes, count: int, config: UniqConfig) -> Optional[bytes]:
    """
    Decides whether a finished run is printed and how. `count` is the number
    of lines that matched the run's first line, so a singleton has count 0.
    """
    if config.mode is Mode.NONE:
        return None
    if config.mode is Mode.REPEATED and count == 0:
        return None
    if config.mode is Mode.UNIQUE and count > 0:
        return None

    if config.count:
        return b'%d %s\n' % (count + 1, line)
    return line + b'\n'

class RunCollapser:
    """Groups adjacent lines with equal keys and emits one record per group."""
    def __init__(self, config: UniqConfig):
        self.config = config

    def key_for(self, line):
        key = get_comparison_key(line, self.config.skip_fields, self.config.skip_chars)
        if self.config.ignore_case:
            key = key.lower()
        return key

    def process_stream(self, lines):
        """Consumes an iterable of lines and yields the output records."""
        if self.config.mode is Mode.NONE:
            return

        # Group iterators are lazy: a run is emitted as soon as the next starts.
        for _, group in itertools.groupby(lines, key=self.key_for):
            first_line = next(group)
            # count is the number of lines after the first that matched it.
            count = sum(1 for _ in group)
            record = format_record(first_line, count, self.config)
            if record is not None:
                yield record

def read_lines(stream):
    """Yields each line of a binary stream without its newline."""
    for line in stream:
        if line.endswith(b'\n'):
            line = line[:-1]
        yield line

def open_input(path):
    """Opens the input file, or returns stdin for '' and '-'."""
    if not path or path == '-':
        return sys.stdin.buffer
    if os.path.isdir(path):
        raise IsADirectoryError(21, 'Is a directory', path)
    return open(path, 'rb')

def open_output(path):
    """Opens the output file, or returns stdout for '' and '-'."""
    if not path or path == '-':
        return sys.stdout.buffer
    return open(path, 'wb')

def close_stream(stream):
    """Closes a stream unless it is one of the standard ones."""
    if stream is sys.stdin.buffer:
        return
    if stream is sys.stdout.buffer:
        stream.flush()
        return
    stream.close()

def non_negative_int(value):
    """argparse type for the -f and -s counts."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: '{value}'")
    if number < 0:
        raise argparse.ArgumentTypeError(f"number must not be negative: '{value}'")
    return number

def translate_historic_options(raw_args):
    """
    Rewrites the old -NUMBER and +NUMBER forms as -f NUMBER and -s NUMBER.
    Everything after '--' is left alone so such names can still be files.
    """
    processed_args = []
    for i, arg in enumerate(raw_args):
        if arg == '--':
            processed_args.extend(raw_args[i:])
            break
        if re.match(r'^-(\d+)$', arg):
            processed_args.extend(['-f', arg[1:]])
        elif re.match(r'^\+(\d+)$', arg):
            processed_args.extend(['-s', arg[1:]])
        else:
            processed_args.append(arg)
    return processed_args

def build_parser():
    parser = argparse.ArgumentParser(
        prog='uniq',
        description="Report or filter out repeated adjacent lines in a file.",
        usage="%(prog)s [-c] [-d] [-u] [-i] [-f fields] [-s chars] [input [output]]"
    )
    parser.add_argument('-d', '--repeated', action='store_true', help='Only print duplicated lines, one for each group.')
    parser.add_argument('-u', '--unique', action='store_true', help='Only print lines that are not repeated.')
    parser.add_argument('-i', '--ignore-case', action='store_true', help='Ignore case when comparing lines.')
    parser.add_argument('-c', '--count', action='store_true', help='Prefix each line by its number of occurrences.')
    parser.add_argument('-s', '--skip-chars', type=non_negative_int, default=0, metavar='N', help='Avoid comparing the first N characters.')
    parser.add_argument('-f', '--skip-fields', type=non_negative_int, default=0, metavar='N', help='Avoid comparing the first N fields.')

    parser.add_argument('input', nargs='?', default='-', help="Input file (default: stdin).")
    parser.add_argument('output', nargs='?', default='-', help="Output file (default: stdout).")
    return parser

def main():
    """Parses arguments and runs the uniq logic."""
    program_name = os.path.basename(sys.argv[0])

    args = build_parser().parse_args(translate_historic_options(sys.argv[1:]))
    config = UniqConfig.from_args(args)

    # Asking for both duplicated and unique lines prints nothing; don't
    # even open the files.
    if config.mode is Mode.NONE:
        sys.exit(EX_SUCCESS)

    try:
        input_stream = open_input(args.input)
    except OSError as e:
        print(f"{program_name}: failed to open '{e.filename}': {e.strerror}", file=sys.stderr)
        sys.exit(EX_FAILURE)

    try:
        output_stream = open_output(args.output)
    except OSError as e:
        close_stream(input_stream)
        print(f"{program_name}: failed to open '{e.filename}': {e.strerror}", file=sys.stderr)
        sys.exit(EX_FAILURE)

    try:
        try:
            collapser = RunCollapser(config)
            for record in collapser.process_stream(read_lines(input_stream)):
                output_stream.write(record)
        finally:
            # Buffered write errors can surface on close.
            close_stream(output_stream)
    except OSError as e:
        print(f"{program_name}: I/O error: {e.strerror or e}", file=sys.stderr)
        sys.exit(EX_FAILURE)
    finally:
        close_stream(input_stream)

    sys.exit(EX_SUCCESS)

if __name__ == "__main__":
    main()
