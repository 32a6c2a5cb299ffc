"""
Raw record suppliers.

The engine consumes plain lines, one trade per line, with no header row.
`read_csv_data_rows` is the header-skipping alternative and is only used
when the configuration says the input has a header; the two conventions
are never guessed from the data.

Author: Your Name
Date: 2024
"""

import csv
import io
import logging
from pathlib import Path
from typing import List, TextIO, Union

from tax_engine.exceptions import LineSourceError

# Configure logging
logger = logging.getLogger(__name__)

# Undecodable bytes survive as lone surrogates so the record parser can
# reject that one record instead of the whole source failing to decode
DECODE_ERRORS = 'surrogateescape'


def split_lines(text: str) -> List[str]:
    """
    Split text on newlines only, dropping a trailing carriage return per line.

    Other Unicode line boundaries (form feed, U+2028, ...) stay inside the
    record. The empty string after a final newline is not a line.
    """
    lines = [line.rstrip('\r') for line in text.split('\n')]
    if lines and lines[-1] == '':
        lines.pop()
    return lines


def open_text_stream(stream: TextIO) -> TextIO:
    """Rewrap a standard stream so undecodable bytes do not abort reading."""
    buffer = getattr(stream, 'buffer', None)
    if buffer is None:
        return stream
    return io.TextIOWrapper(buffer, encoding='utf-8', errors=DECODE_ERRORS, newline='')


def read_lines_from_stream(stream: TextIO) -> List[str]:
    """Read every line of an open text stream, without line terminators."""
    try:
        return split_lines(stream.read())
    except UnicodeDecodeError as e:
        raise LineSourceError("decoding input stream") from e


def read_lines_from_file(path: Union[str, Path]) -> List[str]:
    """
    Read every line of a text file, without line terminators.

    Raises:
        LineSourceError: If the file cannot be read
    """
    try:
        with open(path, 'r', encoding='utf-8', errors=DECODE_ERRORS, newline='') as file:
            lines = read_lines_from_stream(file)
    except OSError as e:
        raise LineSourceError(f"reading file {path}") from e

    logger.info(f"Read {len(lines)} lines from {path}")
    return lines


def read_csv_data_rows(path: Union[str, Path]) -> List[str]:
    """
    Read a CSV file, skip its header row and return the data rows as records.

    Rows are re-joined with commas so they feed the same parser as plain
    lines. Quoted fields containing commas are not supported by the trade
    format and will fail parsing downstream.

    Raises:
        LineSourceError: If the file cannot be read
    """
    try:
        with open(path, 'r', encoding='utf-8', errors=DECODE_ERRORS, newline='') as file:
            return _csv_data_rows(file, str(path))
    except OSError as e:
        raise LineSourceError(f"reading file {path}") from e


def read_csv_data_rows_from_stream(stream: TextIO) -> List[str]:
    """Header-skipping variant of `read_lines_from_stream`."""
    try:
        text = stream.read()
    except UnicodeDecodeError as e:
        raise LineSourceError("decoding input stream") from e
    return _csv_data_rows(io.StringIO(text, newline=''), "<stream>")


def _csv_data_rows(file: TextIO, source: str) -> List[str]:
    reader = csv.reader(file)
    header = next(reader, None)
    if header is None:
        logger.warning(f"CSV source {source} is empty")
        return []

    rows = [",".join(row) for row in reader]
    logger.info(f"Read {len(rows)} data rows from {source} (header: {header})")
    return rows
