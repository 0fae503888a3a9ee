"""Exception hierarchy for loanbatch."""


class LoanBatchError(Exception):
    """Base exception for all loanbatch errors."""


class ConfigurationError(LoanBatchError, RuntimeError):
    """Raised when configuration is invalid or missing."""


class RecordReadError(LoanBatchError, ValueError):
    """Raised when an input row cannot be turned into an ApplicantRecord.

    Always fatal to the run.
    """

    def __init__(self, row_number: int, message: str):
        self.row_number = row_number
        super().__init__(f"Row {row_number}: {message}")


class StageError(LoanBatchError):
    """Raised inside the processor when a remote stage fails.

    Never escapes LoanProcessor.process(); the item is dropped instead.
    """

    def __init__(self, stage: str, message: str):
        self.stage = stage
        super().__init__(f"{stage}: {message}")


class ReportWriteError(LoanBatchError):
    """Raised when the final report cannot be written."""
