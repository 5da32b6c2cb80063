"""Broker trade-log importer.

Parses the comma-separated history export of MT4/MT5 style brokers into
TradeRecords and aggregates them for a single journal week. The importer
is tolerant of column naming, quoting and a few timestamp layouts; rows
it cannot date are dropped instead of failing the import.
"""

import csv
import math
import re
import sys
from datetime import datetime, time
from pathlib import Path
from typing import Optional

from dateutil import parser as date_parser
from pydantic import BaseModel, Field

from weekjournal.dates.weeks import parse_week_key
from weekjournal.errors import FormatError
from weekjournal.models import TradeRecord

# Header aliases, tried in order; the first alias present in the header wins.
TIME_ALIASES = ("time", "open time", "time open", "date")
SYMBOL_ALIASES = ("symbol", "instrument", "item")
TYPE_ALIASES = ("type", "side", "direction")
LOTS_ALIASES = ("volume", "lots", "size")
PROFIT_ALIASES = ("profit", "p/l", "p-l", "pnl")

_YMD_RE = re.compile(
    r"^(\d{4})[.-](\d{1,2})[.-](\d{1,2})(?:[T ]+(\d{1,2}):(\d{2})(?::(\d{2}))?)?"
)
_DMY_RE = re.compile(
    r"^(\d{1,2})\.(\d{1,2})\.(\d{4})(?:[T ]+(\d{1,2}):(\d{2})(?::(\d{2}))?)?"
)

_LINE_RE = re.compile(r"\r?\n")

# Broker comments can exceed the csv module's default field limit.
csv.field_size_limit(sys.maxsize)


class TradeSummary(BaseModel):
    """Trades of one week with their aggregate statistics."""

    trades: list[TradeRecord] = Field(default_factory=list)
    number_of_trades: int = Field(default=0, ge=0)
    pnl: float = Field(default=0.0)

    model_config = {"frozen": True}


def split_csv_line(line: str) -> list[str]:
    """Split one line into fields, honouring double-quoted fields.

    A doubled quote inside a quoted field is a literal quote; unquoted
    commas end a field.

    Raises:
        FormatError: If the line cannot be tokenised.
    """
    try:
        return next(csv.reader([line]), [])
    except csv.Error as e:
        raise FormatError(f"Malformed trade log line: {e}") from e


def _build_datetime(year, month, day, hour, minute, second) -> Optional[datetime]:
    try:
        return datetime(
            int(year),
            int(month),
            int(day),
            int(hour or 0),
            int(minute or 0),
            int(second or 0),
        )
    except ValueError:
        return None


def parse_trade_time(value: str) -> Optional[datetime]:
    """Parse a trade timestamp.

    Tries ``YYYY.MM.DD HH:MM[:SS]`` (``-`` separators and a ``T`` are
    accepted too), then ``DD.MM.YYYY HH:MM[:SS]``, then generic parsing.

    Returns:
        Naive local datetime, or None if no layout matches.
    """
    text = (value or "").strip()
    if not text:
        return None

    match = _YMD_RE.match(text)
    if match:
        dt = _build_datetime(*match.groups())
        if dt:
            return dt

    match = _DMY_RE.match(text)
    if match:
        day, month, year, hour, minute, second = match.groups()
        dt = _build_datetime(year, month, day, hour, minute, second)
        if dt:
            return dt

    try:
        dt = date_parser.parse(text)
    except (ValueError, OverflowError):
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def parse_number(value: Optional[str]) -> float:
    """Parse a decimal, ignoring thousands separators. Bad input gives 0."""
    text = (value or "").replace(",", "").strip()
    if not text:
        return 0.0
    try:
        number = float(text)
    except ValueError:
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def _find_column(header: list[str], aliases: tuple[str, ...]) -> Optional[int]:
    for alias in aliases:
        if alias in header:
            return header.index(alias)
    return None


def _cell(row: list[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def parse_trade_log(text: str) -> list[TradeRecord]:
    """Parse a trade-log export into records.

    Args:
        text: Full file contents.

    Returns:
        Records for every row with a usable timestamp, in file order.

    Raises:
        FormatError: If the input is empty or has no time column.
    """
    lines = [line for line in _LINE_RE.split(text or "") if line.strip()]
    if not lines:
        raise FormatError("Trade log is empty")

    header = [cell.lstrip("\ufeff").strip().lower() for cell in split_csv_line(lines[0])]

    time_idx = _find_column(header, TIME_ALIASES)
    if time_idx is None:
        raise FormatError("Trade log is missing Time column")
    symbol_idx = _find_column(header, SYMBOL_ALIASES)
    type_idx = _find_column(header, TYPE_ALIASES)
    lots_idx = _find_column(header, LOTS_ALIASES)
    profit_idx = _find_column(header, PROFIT_ALIASES)

    records: list[TradeRecord] = []
    for line in lines[1:]:
        row = split_csv_line(line)
        if not any(cell.strip() for cell in row):
            continue

        traded_at = parse_trade_time(_cell(row, time_idx))
        if traded_at is None:
            continue

        records.append(
            TradeRecord(
                time=traded_at,
                symbol=_cell(row, symbol_idx),
                type=_cell(row, type_idx),
                lots=max(parse_number(_cell(row, lots_idx)), 0.0),
                profit=parse_number(_cell(row, profit_idx)),
            )
        )

    return records


def round_money(value: float) -> float:
    """Round to cents, half away from zero, nudged past binary error."""
    scaled = (value + sys.float_info.epsilon) * 100
    cents = math.floor(abs(scaled) + 0.5)
    rounded = cents / 100 if scaled >= 0 else -cents / 100
    return rounded + 0.0


def summarize_week(trades: list[TradeRecord], key: str) -> TradeSummary:
    """Keep the trades inside a week and total them.

    The week runs from Monday 00:00:00 to Sunday 23:59:59, both inclusive.

    Args:
        trades: Parsed records.
        key: WeekKey of the target week.

    Returns:
        TradeSummary with the kept trades, their count and rounded P&L.
    """
    start_day, end_day = parse_week_key(key)
    start = datetime.combine(start_day, time.min)
    end = datetime.combine(end_day, time(23, 59, 59))

    in_week = [trade for trade in trades if start <= trade.time <= end]
    return TradeSummary(
        trades=in_week,
        number_of_trades=len(in_week),
        pnl=round_money(sum(trade.profit for trade in in_week)),
    )


def read_trade_log(path: Path) -> str:
    """Read a trade-log file, tolerating common export encodings.

    Raises:
        FormatError: If the file cannot be read.
    """
    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        raise FormatError(f"Could not read trade log {path}: {e.strerror or e}") from e

    for encoding in ("utf-8-sig", "cp1252"):
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue
    return raw.decode("latin-1")
