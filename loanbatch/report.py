"""
report.py - Report Aggregator
==============================
Collects the accepted records of every chunk and, once the run is over,
renders them as a fixed-width text report.

Report Layout:
--------------
- Title block
- Summary: records read, loans generated, simulations not approved
- One row per record that received a loan (not-approved records are only
  counted in the summary)

The file is written once, through a temporary file in the same directory
and an atomic rename, so a reader never sees a half-written report.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Iterable, List, Tuple

from .errors import ReportWriteError
from .models import ApplicantRecord, DATE_FORMAT


logger = logging.getLogger(__name__)


TITLE = "GENERATED LOANS REPORT"


def _money(value: float) -> str:
    """Format an amount with two decimals."""
    return f"{value:.2f}"


# =============================================================================
# DETAIL TABLE COLUMNS
# =============================================================================
# (header, width, right-aligned, value)

Column = Tuple[str, int, bool, Callable[[ApplicantRecord], str]]

COLUMNS: List[Column] = [
    ("Client ID", 10, True, lambda r: str(r.client_id)),
    ("First Name", 15, False, lambda r: r.first_name),
    ("Paternal Last Name", 20, False, lambda r: r.paternal_last_name),
    ("Maternal Last Name", 20, False, lambda r: r.maternal_last_name),
    ("Loan ID", 10, True, lambda r: str(r.loan_id)),
    ("Currency", 8, False, lambda r: r.currency),
    ("Loan Amount", 14, True, lambda r: _money(r.loan_amount)),
    ("Total Interest", 14, True, lambda r: _money(r.total_interest)),
    ("Disbursement", 12, False, lambda r: r.disbursement_date.strftime(DATE_FORMAT)),
    ("Next Payment", 12, False, lambda r: r.next_payment_date.strftime(DATE_FORMAT)),
    ("Term", 5, True, lambda r: str(r.term)),
    ("Monthly Payment", 15, True, lambda r: _money(r.monthly_payment)),
]

COLUMN_GAP = " "
LINE_WIDTH = sum(width for _, width, _, _ in COLUMNS) + len(COLUMN_GAP) * (len(COLUMNS) - 1)


def _cell(text: str, width: int, right: bool) -> str:
    """
    Pad one value to its column width.

    Args:
        text: Rendered value
        width: Column width
        right: True for numeric columns, which are right-aligned

    Returns:
        The padded cell. Long text is cut to the width; numbers never are
        and overflow instead.
    """
    if not right:
        text = text[:width]
    return text.rjust(width) if right else text.ljust(width)


def _row(cells: Iterable[str]) -> str:
    """Join one line of cells, dropping trailing padding."""
    parts = [_cell(text, width, right) for text, (_, width, right, _) in zip(cells, COLUMNS)]
    return COLUMN_GAP.join(parts).rstrip()


# =============================================================================
# AGGREGATOR
# =============================================================================

class ReportAggregator:
    """
    Accumulates accepted records in arrival order and renders the report.

    Usage:
        report = ReportAggregator()
        report.write(chunk_items)          # once per chunk, possibly empty
        report.save("report.txt", total_read=ctx.total_read)
    """

    def __init__(self):
        self.accepted: List[ApplicantRecord] = []

    def write(self, items: Iterable[ApplicantRecord]):
        """Append the surviving records of one chunk."""
        self.accepted.extend(items)

    @property
    def loans(self) -> List[ApplicantRecord]:
        return [r for r in self.accepted if r.has_loan]

    @property
    def loans_generated(self) -> int:
        return len(self.loans)

    @property
    def not_approved(self) -> int:
        return len(self.accepted) - self.loans_generated

    def render(self, total_read: int) -> str:
        """
        Build the complete report text.

        Args:
            total_read: Every record read from the source, dropped or not
        """
        loans = self.loans

        lines = [
            "=" * LINE_WIDTH,
            TITLE.center(LINE_WIDTH).rstrip(),
            "=" * LINE_WIDTH,
            "",
            f"Total records read: {total_read}",
            f"Total loans generated: {len(loans)}",
            f"Simulations not approved: {len(self.accepted) - len(loans)}",
            "",
        ]

        if not loans:
            lines.append("No loans were generated in this run.")
        else:
            lines.append("-" * LINE_WIDTH)
            lines.append(_row(header for header, _, _, _ in COLUMNS))
            lines.append("-" * LINE_WIDTH)
            for record in loans:
                lines.append(_row(value(record) for _, _, _, value in COLUMNS))

        lines.append("=" * LINE_WIDTH)
        return "\n".join(lines) + "\n"

    def save(self, path: str, total_read: int) -> Path:
        """
        Render and write the report atomically, replacing any previous one.

        Raises:
            ReportWriteError: If the file cannot be written
        """
        target = Path(path)
        content = self.render(total_read)
        tmp_name = None
        replaced = False

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                'w',
                encoding='utf-8',
                dir=target.parent,
                prefix=f".{target.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(content)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, target)
            replaced = True
        except OSError as e:
            raise ReportWriteError(f"Could not write report to {target}: {e}") from e
        finally:
            # Also reached on KeyboardInterrupt
            if not replaced and tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        logger.info(f"Report written to {target.resolve()}")
        return target
