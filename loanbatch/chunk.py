"""
chunk.py - Chunk Controller
============================
Drives the run: read up to N records, process each one, hand the
survivors to the report, repeat until the source is exhausted.

State Machine:
--------------
    IDLE -> READING -> PROCESSING -> WRITING -> (READING ...) -> COMPLETED
    any phase -> FAILED (read error or other fatal exception)

Failure Isolation:
------------------
- A read error (malformed row) is fatal: it propagates and the run fails.
- A dropped item (processor returned None) only removes that item.
- An unexpected exception while processing an item is logged and the item
  is dropped; its siblings in the chunk are unaffected.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .loader import RecordSource
from .models import ApplicantRecord
from .processor import LoanProcessor
from .report import ReportAggregator


logger = logging.getLogger(__name__)


DEFAULT_CHUNK_SIZE = 5


class RunState(Enum):
    IDLE = "idle"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RunContext:
    """Counters for one run. Only the controller thread updates them."""

    total_read: int = 0
    total_written: int = 0
    total_dropped: int = 0
    chunks: int = 0


class ChunkController:
    """
    Run the read -> process -> write loop over fixed-size chunks.

    Usage:
        controller = ChunkController(source, processor, report, chunk_size=5)
        ctx = controller.run()
        report.save("report.txt", ctx.total_read)
    """

    def __init__(
        self,
        source: RecordSource,
        processor: LoanProcessor,
        report: ReportAggregator,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_workers: int = 1,
        context: Optional[RunContext] = None,
    ):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")

        self.source = source
        self.processor = processor
        self.report = report
        self.chunk_size = chunk_size
        self.max_workers = max_workers
        self.context = context or RunContext()
        self.state = RunState.IDLE

    def run(self) -> RunContext:
        """
        Process the whole source, chunk by chunk.

        Returns:
            The RunContext with the final counters

        Raises:
            RecordReadError: If the source hits a malformed row
        """
        executor = None
        if self.max_workers > 1:
            executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="loanbatch"
            )

        try:
            self.source.open()
            while True:
                items = self._read_chunk()
                if not items:
                    break

                survivors = self._process_chunk(items, executor)
                self._write_chunk(items, survivors)

                if len(items) < self.chunk_size:
                    break
        except BaseException:
            self.state = RunState.FAILED
            raise
        finally:
            self.source.close()
            if executor is not None:
                executor.shutdown(wait=True, cancel_futures=True)

        self.state = RunState.COMPLETED
        ctx = self.context
        logger.info(
            f"Run complete: {ctx.chunks} chunks, {ctx.total_read} read, "
            f"{ctx.total_written} written, {ctx.total_dropped} dropped"
        )
        return ctx

    # -------------------------------------------------------------------------
    # PHASES
    # -------------------------------------------------------------------------

    def _read_chunk(self) -> List[ApplicantRecord]:
        """
        Read up to chunk_size records, stopping early at end of input.

        Returns:
            The records read; empty once the source is exhausted

        Raises:
            RecordReadError: If the source hits a malformed row
        """
        self.state = RunState.READING
        items = []
        while len(items) < self.chunk_size:
            record = self.source.read()
            if record is None:
                break
            items.append(record)
            self.context.total_read += 1
        return items

    def _process_chunk(
        self,
        items: List[ApplicantRecord],
        executor: Optional[ThreadPoolExecutor],
    ) -> List[ApplicantRecord]:
        """
        Process every record of a chunk, in parallel when an executor is given.

        Args:
            items: Records of the current chunk
            executor: Thread pool, or None to run sequentially

        Returns:
            The non-dropped records in input order
        """
        self.state = RunState.PROCESSING

        # map() keeps input order and only returns once every item is done
        if executor is None:
            results = [self._process_item(record) for record in items]
        else:
            results = list(executor.map(self._process_item, items))

        return [r for r in results if r is not None]

    def _process_item(self, record: ApplicantRecord) -> Optional[ApplicantRecord]:
        """Run the processor on one record; an unexpected exception drops only that record."""
        try:
            return self.processor.process(record)
        except Exception:
            logger.exception(
                f"Unexpected error processing {record.first_name} "
                f"{record.paternal_last_name}; item dropped"
            )
            return None

    def _write_chunk(self, items: List[ApplicantRecord], survivors: List[ApplicantRecord]):
        """
        Hand the survivors to the report, even when none are left, and update the counters.

        Args:
            items: Every record read in this chunk
            survivors: The records that were not dropped
        """
        self.state = RunState.WRITING
        self.report.write(survivors)

        ctx = self.context
        ctx.chunks += 1
        ctx.total_written += len(survivors)
        ctx.total_dropped += len(items) - len(survivors)
        logger.info(
            f"Chunk {ctx.chunks}: {len(items)} read, {len(survivors)} written "
            f"| totals: {ctx.total_read} read, {ctx.total_written} written"
        )
