"""`.ptab` text format (load / save).

Layout:

    # METADATA:HMax=32029
    Cadence/Power,30W,60W,90W
    60RPM,120,,180
    90RPM,100,130,

Stored cells are multiplied by the storage multiplier on load and divided
(rounded) on save. Parsing is lenient the same way the editor always was:
unreadable cadence rows and unreadable cells are skipped, not reported.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from core.constants import (
    DEFAULT_EXPORT_NAME,
    DEFAULT_MAX_RESISTANCE,
    DEFAULT_STORAGE_MULTIPLIER,
    HEADER_LABEL,
    METADATA_PREFIX,
    PTAB_EXTENSION,
)
from core.errors import InvalidValueError, ParseError
from core.power_table import PowerTable, TableConfig
from core.utils import parse_int, round_half_up


_HMAX_RE = re.compile(r"HMax=(\d+)")


@dataclass(frozen=True)
class ParsedTable:
    table: PowerTable
    power_columns: list[int]
    has_metadata: bool
    skipped_rows: int


def _parse_metadata(line: str) -> int | None:
    if not line.startswith(METADATA_PREFIX):
        return None
    match = _HMAX_RE.search(line)
    if match is None:
        return None
    return int(match.group(1))


def _parse_header(line: str) -> list[int | None]:
    cells = line.split(",")
    powers = [parse_int(cell.replace("W", "")) for cell in cells[1:]]
    if not any(p is not None and p > 0 for p in powers):
        raise ParseError(f"Header has no power columns: {line[:80]!r}")
    return powers


def parse_ptab(
    text: str,
    *,
    storage_multiplier: int = DEFAULT_STORAGE_MULTIPLIER,
    max_resistance: int = DEFAULT_MAX_RESISTANCE,
) -> ParsedTable:
    """Parse .ptab content into a new table.

    `max_resistance` is kept unless the metadata line carries an HMax value.
    """

    if not isinstance(text, str):
        raise ParseError("Table content must be text")
    if storage_multiplier <= 0:
        raise InvalidValueError(f"Storage multiplier must be positive, got {storage_multiplier}")

    lines = [line.strip() for line in text.strip().split("\n")]
    if len(lines) < 2:
        raise ParseError("Table must contain a metadata line and a header line")

    hmax = _parse_metadata(lines[0])
    if lines[0].startswith(HEADER_LABEL):
        # No metadata line at all; the header comes first.
        header_index = 0
    else:
        header_index = 1
    powers = _parse_header(lines[header_index])

    config = TableConfig(
        max_resistance=hmax if hmax is not None else int(max_resistance),
        storage_multiplier=int(storage_multiplier),
    )
    table = PowerTable(config=config)
    skipped = 0

    for line in lines[header_index + 1:]:
        if not line:
            continue
        cells = line.split(",")
        cadence = parse_int(cells[0].replace("RPM", ""))
        if cadence is None:
            skipped += 1
            continue

        row: dict[int, int] = {}
        for j in range(1, min(len(cells), len(powers) + 1)):
            raw = cells[j].strip()
            if not raw:
                continue
            watts = powers[j - 1]
            value = parse_int(raw)
            if watts is None or value is None:
                continue
            row[watts] = value * config.storage_multiplier

        if row:
            # A repeated cadence row replaces the earlier one.
            table.lines[cadence] = row

    return ParsedTable(
        table=table,
        power_columns=[p for p in powers if p is not None],
        has_metadata=hmax is not None,
        skipped_rows=skipped,
    )


def table_to_frame(table: PowerTable) -> pd.DataFrame:
    """Grid view: one row per cadence, one column per power, <NA> for gaps."""

    powers = table.all_powers_used()
    cadences = table.cadences()
    frame = pd.DataFrame(
        [[table.get(cadence, power) for power in powers] for cadence in cadences],
        index=pd.Index(cadences, name="cadence"),
        columns=pd.Index(powers, name="power"),
        dtype="Int64",
    )
    return frame


def serialize_ptab(table: PowerTable) -> str:
    multiplier = table.config.storage_multiplier
    frame = table_to_frame(table)

    out = [f"{METADATA_PREFIX}{table.max_resistance}"]
    out.append(",".join([HEADER_LABEL] + [f"{power}W" for power in frame.columns]))
    for cadence, row in frame.iterrows():
        cells = [f"{cadence}RPM"]
        for value in row:
            cells.append("" if pd.isna(value) else str(round_half_up(int(value) / multiplier)))
        out.append(",".join(cells))
    return "\n".join(out) + "\n"


def check_upload_filename(filename: str | None) -> str:
    if not filename or not filename.lower().endswith(PTAB_EXTENSION):
        raise ParseError("Please select a valid .ptab file")
    return filename


def decode_upload(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError(f"Failed to read file: {e}")


def normalize_export_filename(name: str | None) -> str:
    """'my table' -> 'my table.ptab', '' -> 'powertable.ptab', 'x.PTAB' -> 'x.ptab'."""

    stem = (name or "").strip()
    if not stem:
        stem = DEFAULT_EXPORT_NAME
    if stem.lower().endswith(PTAB_EXTENSION):
        stem = stem[: -len(PTAB_EXTENSION)]
    stem = Path(stem).name or DEFAULT_EXPORT_NAME
    return f"{stem}{PTAB_EXTENSION}"
