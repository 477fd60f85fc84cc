"""Delimited text output of a sorted profile, joined with attribute rows."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TextIO

from loguru import logger
from pydantic import BaseModel

from .attributes import AttributeStore, is_quoted
from .errors import AttributeLookupError, OutputError
from .models import Column, ResultRecord


class FormatConfig(BaseModel):
    """Shape of every output record, resolved once per run.

    ``columns`` is None when the profiled layer has no attribute table, in
    which case attribute columns are left out altogether.
    """

    delimiter: str = "|"
    dp: int = 2
    with_z: bool = False
    columns: list[Column] | None = None
    header: bool = True
    quote: str = '"'

    @property
    def with_attributes(self) -> bool:
        return self.columns is not None


def format_header(config: FormatConfig) -> str:
    names = ["Number", "Distance"]
    if config.with_z:
        names.append("Z")
    if config.with_attributes:
        names.extend(c.name for c in config.columns)
    return config.delimiter.join(names)


def format_value(value: str, column: Column, quote: str = '"') -> str:
    """Quote character, text and date/time values; leave the rest bare."""
    if not is_quoted(column):
        return value
    return quote + value.replace(quote, quote + quote) + quote


def format_record(number: int, record: ResultRecord, row: list[str] | None, config: FormatConfig) -> str:
    """One output line (without terminator) for the ``number``-th record."""
    fields = [str(number), f"{record.distance:.{config.dp}f}"]
    if config.with_z:
        fields.append("" if record.elevation is None else f"{record.elevation:.{config.dp}f}")
    if config.with_attributes:
        if row is None:
            fields.extend("" for _ in config.columns)
        else:
            fields.extend(format_value(v, c, config.quote) for v, c in zip(row, config.columns))
    return config.delimiter.join(fields)


def _lookup(store: AttributeStore, category: int | None) -> list[str] | None:
    if category is None:
        return None
    try:
        return store.select_row(category)
    except AttributeLookupError as e:
        logger.warning(str(e))
        return None


def iter_lines(
    records: Iterable[ResultRecord], config: FormatConfig, store: AttributeStore | None = None
) -> Iterator[str]:
    """Header (when enabled) and record lines, each terminated by a newline."""
    if config.header:
        yield format_header(config) + "\n"
    for number, record in enumerate(records, start=1):
        row = _lookup(store, record.category) if config.with_attributes and store is not None else None
        yield format_record(number, record, row, config) + "\n"


def write_profile(
    records: Iterable[ResultRecord], sink: TextIO, config: FormatConfig, store: AttributeStore | None = None
) -> int:
    """Write the profile to ``sink``, flushing after every line. Returns the record count."""
    count = 0
    for line in iter_lines(records, config, store):
        try:
            sink.write(line)
            sink.flush()
        except OSError as e:
            raise OutputError(f"Can not write data portion to provided output: {e}") from e
        count += 1
    return count - 1 if config.header else count
