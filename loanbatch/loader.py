"""
loader.py - Applicant Record Source
====================================
This module turns the input file into ApplicantRecord objects, one row at
a time.

Supported Input Formats:
------------------------
- CSV files: .csv (streamed in blocks, first line is always a header)
- Parquet files: .parquet (loaded once on open, columns looked up by name)

Column Layout:
--------------
The CSV header row is skipped unconditionally and never used for mapping.
Columns are taken by position in this fixed order:

    firstName, paternalLastName, maternalLastName, currencyOfIncome,
    monthlyIncome, loanAmount, currency, interestRate, term, disbursementDate

Type Coercion:
--------------
- monthlyIncome, loanAmount, interestRate : decimal numbers
- term                                    : integer
- disbursementDate                        : dd/MM/yyyy
Any row that does not coerce raises RecordReadError, which ends the run.
"""

import logging
import math
import numbers
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

import pandas as pd

from .errors import RecordReadError
from .models import ApplicantRecord, DATE_FORMAT


logger = logging.getLogger(__name__)


# =============================================================================
# COLUMN LAYOUT
# =============================================================================

COLUMNS: List[str] = [
    'firstName',
    'paternalLastName',
    'maternalLastName',
    'currencyOfIncome',
    'monthlyIncome',
    'loanAmount',
    'currency',
    'interestRate',
    'term',
    'disbursementDate',
]

# Rows pulled from pandas per block when streaming a CSV
CSV_BLOCK_ROWS = 500

SUPPORTED_SUFFIXES = ('.csv', '.parquet')

# Strict shapes checked before conversion: no "_" digit separators, and
# two-digit day and month.
DECIMAL_PATTERN = re.compile(r'^[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?$')
INTEGER_PATTERN = re.compile(r'^[+-]?[0-9]+$')
DATE_PATTERN = re.compile(r'^[0-9]{2}/[0-9]{2}/[0-9]{4}$')

# pandas reports the physical line ("Expected 10 fields in line 4, saw 11")
PARSER_LINE_PATTERN = re.compile(r'line (\d+)')


# =============================================================================
# FIELD COERCION
# =============================================================================

def _is_missing(value: Any) -> bool:
    """
    Check whether a raw cell holds no value.

    Args:
        value: Raw cell from the CSV block or Parquet frame

    Returns:
        True for blank strings, None, NaN and NaT
    """
    if isinstance(value, str):
        return not value.strip()
    # None, NaN and NaT (short CSV rows, null Parquet cells)
    return value is None or bool(pd.isna(value))


def _text(row_number: int, field: str, value: Any) -> str:
    """
    Return the stripped text of a required cell.

    Raises:
        RecordReadError: If the cell is empty
    """
    if _is_missing(value):
        raise RecordReadError(row_number, f"{field} is empty")
    return str(value).strip()


def _is_number(value: Any) -> bool:
    """True for real numbers already typed by the reader (Parquet), never for bools."""
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _decimal(row_number: int, field: str, value: Any) -> float:
    """
    Parse a plain decimal number such as 3000, -1.5 or 2.5E3.

    Args:
        row_number: 1-based data row number used in errors
        field: Column name used in errors
        value: Raw cell

    Returns:
        The value as a finite float

    Raises:
        RecordReadError: If the cell is empty, not a plain decimal or not finite
    """
    if _is_number(value) and not _is_missing(value):
        number = float(value)
    else:
        text = _text(row_number, field, value)
        if not DECIMAL_PATTERN.match(text):
            raise RecordReadError(row_number, f"{field} is not a number: {text!r}")
        number = float(text)

    if not math.isfinite(number):
        raise RecordReadError(row_number, f"{field} is not a finite number: {value!r}")
    return number


def _integer(row_number: int, field: str, value: Any) -> int:
    """
    Parse a whole number made of an optional sign and ASCII digits.

    Returns:
        The value as an int

    Raises:
        RecordReadError: If the cell is empty or not an integer
    """
    # Parquet may hand back a float column for integers (e.g. 24.0)
    if isinstance(value, numbers.Integral) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)

    text = _text(row_number, field, value)
    if not INTEGER_PATTERN.match(text):
        raise RecordReadError(row_number, f"{field} is not an integer: {text!r}")
    return int(text)


def _date(row_number: int, field: str, value: Any) -> date:
    """
    Parse a dd/MM/yyyy date; day and month need both digits.

    Returns:
        The value as a date

    Raises:
        RecordReadError: If the cell is empty, badly shaped or not a real date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = _text(row_number, field, value)
    if not DATE_PATTERN.match(text):
        raise RecordReadError(row_number, f"{field} is not a dd/MM/yyyy date: {text!r}")
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError:
        raise RecordReadError(
            row_number, f"{field} is not a dd/MM/yyyy date: {text!r}"
        ) from None


def to_record(row_number: int, values: Dict[str, Any]) -> ApplicantRecord:
    """
    Build an ApplicantRecord from one row keyed by the canonical column names.

    Args:
        row_number: 1-based data row number (header excluded), used in errors
        values: Mapping of column name -> raw cell value

    Raises:
        RecordReadError: If any field is empty, malformed or out of range
    """
    record = ApplicantRecord(
        first_name=_text(row_number, 'firstName', values.get('firstName')),
        paternal_last_name=_text(row_number, 'paternalLastName', values.get('paternalLastName')),
        maternal_last_name=_text(row_number, 'maternalLastName', values.get('maternalLastName')),
        currency_of_income=_text(row_number, 'currencyOfIncome', values.get('currencyOfIncome')),
        monthly_income=_decimal(row_number, 'monthlyIncome', values.get('monthlyIncome')),
        loan_amount=_decimal(row_number, 'loanAmount', values.get('loanAmount')),
        currency=_text(row_number, 'currency', values.get('currency')),
        interest_rate=_decimal(row_number, 'interestRate', values.get('interestRate')),
        term=_integer(row_number, 'term', values.get('term')),
        disbursement_date=_date(row_number, 'disbursementDate', values.get('disbursementDate')),
    )

    if record.monthly_income < 0:
        raise RecordReadError(row_number, "monthlyIncome must not be negative")
    if record.loan_amount <= 0:
        raise RecordReadError(row_number, "loanAmount must be positive")
    if record.term <= 0:
        raise RecordReadError(row_number, "term must be positive")

    return record


# =============================================================================
# RECORD SOURCE
# =============================================================================

class RecordSource:
    """
    Lazy, restartable reader of ApplicantRecords.

    Usage:
        source = RecordSource("clients.csv")
        source.open()
        while (record := source.read()) is not None:
            ...
        source.close()

    or simply:
        with RecordSource("clients.csv") as source:
            for record in source:
                ...

    Every open() starts again from the first data row.
    """

    def __init__(self, filepath: str, block_rows: int = CSV_BLOCK_ROWS):
        self.path = Path(filepath)
        self.block_rows = block_rows
        self._rows: Optional[Iterator[Tuple[int, Dict[str, Any]]]] = None

    # -------------------------------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------------------------------

    def open(self):
        """
        Position the source at the first data row.

        Raises:
            FileNotFoundError: If the input file doesn't exist
            ValueError: If the file type is unsupported
        """
        if not self.path.exists():
            raise FileNotFoundError(f"Input file not found: {self.path}")

        suffix = self.path.suffix.lower()
        if suffix not in SUPPORTED_SUFFIXES:
            raise ValueError(
                f"Unsupported file type: {self.path.suffix}. "
                "Only .csv and .parquet files are supported."
            )

        self.close()
        if suffix == '.csv':
            self._rows = self._csv_rows()
        else:
            self._rows = self._parquet_rows()

    def read(self) -> Optional[ApplicantRecord]:
        """
        Return the next record, or None once the input is exhausted.

        Raises:
            RuntimeError: If called before open()
            RecordReadError: If the next row is malformed
        """
        if self._rows is None:
            raise RuntimeError("RecordSource.read() called before open()")

        item = next(self._rows, None)
        if item is None:
            return None

        row_number, values = item
        return to_record(row_number, values)

    def close(self):
        """Release the underlying file handle; safe to call repeatedly."""
        if self._rows is not None:
            self._rows.close()
            self._rows = None

    def __enter__(self) -> "RecordSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __iter__(self) -> Iterator[ApplicantRecord]:
        while True:
            record = self.read()
            if record is None:
                return
            yield record

    # -------------------------------------------------------------------------
    # ROW GENERATORS
    # -------------------------------------------------------------------------

    def _csv_rows(self) -> Iterator[Tuple[int, Dict[str, Any]]]:
        """Yield (row number, raw values) from the CSV, one block at a time."""
        # Everything is read as text; coercion happens in to_record so the
        # error can name the row and field. The header line is skipped before
        # tokenizing, so its shape never matters.
        row_number = 0

        try:
            with pd.read_csv(
                self.path,
                header=None,
                skiprows=1,
                dtype=str,
                keep_default_na=False,
                skipinitialspace=True,
                chunksize=self.block_rows,
                encoding='utf-8',
            ) as reader:
                for block in reader:
                    if block.shape[1] != len(COLUMNS):
                        raise RecordReadError(
                            row_number + 1,
                            f"expected {len(COLUMNS)} columns, found {block.shape[1]}",
                        )

                    for raw in block.itertuples(index=False, name=None):
                        row_number += 1
                        yield row_number, dict(zip(COLUMNS, raw))
        except pd.errors.EmptyDataError:
            logger.warning(f"Input file {self.path} has no data rows")
        except pd.errors.ParserError as e:
            match = PARSER_LINE_PATTERN.search(str(e))
            bad_row = int(match.group(1)) - 1 if match else row_number + 1
            raise RecordReadError(bad_row, f"unparseable line: {e}") from e

    def _parquet_rows(self) -> Iterator[Tuple[int, Dict[str, Any]]]:
        """Yield (row number, raw values) from the Parquet columns, matched by name."""
        df = pd.read_parquet(self.path)

        missing = [col for col in COLUMNS if col not in df.columns]
        if missing:
            raise RecordReadError(
                1,
                f"required columns missing: {missing}. Available columns: {list(df.columns)}",
            )

        df = df[COLUMNS].astype(object)
        for row_number, raw in enumerate(df.itertuples(index=False, name=None), start=1):
            yield row_number, dict(zip(COLUMNS, raw))
