"""Tests for the CSV/Parquet record source."""

from datetime import date

import pandas as pd
import pytest

from loanbatch.errors import RecordReadError
from loanbatch.loader import COLUMNS, RecordSource


HEADER = ",".join(COLUMNS)


class TestCsvRecordSource:

    def test_reads_first_record(self, write_csv, make_row) -> None:
        path = write_csv([make_row()])

        with RecordSource(path) as source:
            record = source.read()

        assert record.first_name == "Juan"
        assert record.paternal_last_name == "García"
        assert record.maternal_last_name == "López"
        assert record.currency_of_income == "USD"
        assert record.monthly_income == 3000.0
        assert record.loan_amount == 15000.0
        assert record.currency == "USD"
        assert record.interest_rate == 8.5
        assert record.term == 24
        assert record.disbursement_date == date(2025, 12, 20)
        assert record.client_id is None
        assert record.approved is None

    def test_returns_none_at_end(self, write_csv, make_row) -> None:
        path = write_csv([make_row("Juan"), make_row("María")])

        source = RecordSource(path)
        source.open()
        assert source.read().first_name == "Juan"
        assert source.read().first_name == "María"
        assert source.read() is None
        assert source.read() is None
        source.close()

    def test_header_always_skipped(self, write_csv, make_row) -> None:
        # A header that happens to be a valid data row is still skipped
        path = write_csv([make_row("María")], header=make_row("Header"))

        with RecordSource(path) as source:
            names = [r.first_name for r in source]

        assert names == ["María"]

    @pytest.mark.parametrize(
        "header",
        [HEADER + ",", HEADER + ",extra", "firstName,paternalLastName", "just some text"],
    )
    def test_header_shape_is_ignored(self, write_csv, make_row, header) -> None:
        path = write_csv([make_row("Juan"), make_row("María")], header=header)

        with RecordSource(path) as source:
            names = [r.first_name for r in source]

        assert names == ["Juan", "María"]

    def test_plain_numbers_accepted(self, write_csv) -> None:
        path = write_csv(["Juan,García,López,USD,3000,1.5E4,USD,+8.5,024,01/02/2025"])

        with RecordSource(path) as source:
            record = source.read()

        assert record.monthly_income == 3000.0
        assert record.loan_amount == 15000.0
        assert record.interest_rate == 8.5
        assert record.term == 24
        assert record.disbursement_date == date(2025, 2, 1)

    def test_header_only_file_is_empty(self, write_csv) -> None:
        path = write_csv([])

        with RecordSource(path) as source:
            assert list(source) == []

    def test_empty_file_is_empty(self, tmp_path) -> None:
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")

        with RecordSource(path) as source:
            assert source.read() is None

    def test_reopen_restarts_from_first_row(self, write_csv, make_row) -> None:
        path = write_csv([make_row(n) for n in ("Ana", "Luis", "Eva")])
        source = RecordSource(path)

        source.open()
        first_pass = [source.read().first_name, source.read().first_name]
        source.close()

        source.open()
        second_pass = [r.first_name for r in source]
        source.close()

        assert first_pass == ["Ana", "Luis"]
        assert second_pass == ["Ana", "Luis", "Eva"]

    def test_streams_across_blocks(self, write_csv, make_row) -> None:
        names = [f"Name{i}" for i in range(7)]
        path = write_csv([make_row(n) for n in names])

        with RecordSource(path, block_rows=2) as source:
            assert [r.first_name for r in source] == names

    def test_read_is_lazy(self, write_csv, make_row) -> None:
        bad = make_row("Bad").replace("20/12/2025", "2025-12-20")
        path = write_csv([make_row("Ana"), make_row("Luis"), bad])

        with RecordSource(path, block_rows=1) as source:
            assert source.read().first_name == "Ana"
            assert source.read().first_name == "Luis"
            with pytest.raises(RecordReadError) as exc:
                source.read()

        assert exc.value.row_number == 3

    def test_read_before_open(self, write_csv, make_row) -> None:
        source = RecordSource(write_csv([make_row()]))

        with pytest.raises(RuntimeError):
            source.read()


class TestCsvCoercionErrors:

    @pytest.mark.parametrize(
        "row",
        [
            "Juan,García,López,USD,abc,15000.0,USD,8.5,24,20/12/2025",
            "Juan,García,López,USD,3000.0,15000.0,USD,8.5,24.5,20/12/2025",
            "Juan,García,López,USD,3000.0,15000.0,USD,high,24,20/12/2025",
            "Juan,García,López,USD,3000.0,15000.0,USD,8.5,24,31/02/2025",
            "Juan,García,López,USD,3000.0,15000.0,USD,8.5,24,12-20-2025",
            ",García,López,USD,3000.0,15000.0,USD,8.5,24,20/12/2025",
            "Juan,García,López,USD,3000.0,-1,USD,8.5,24,20/12/2025",
            "Juan,García,López,USD,3000.0,15000.0,USD,8.5,0,20/12/2025",
            "Juan,García,López,USD,3000.0",
            "Juan,García,López,USD,3000.0,15000.0,USD,8.5,24,1/2/2025",
            "Juan,García,López,USD,3_000,15000.0,USD,8.5,24,20/12/2025",
            "Juan,García,López,USD,3000.0,15000.0,USD,8.5,2_4,20/12/2025",
            "Juan,García,López,USD,3000.0,15000.0,USD,0x1A,24,20/12/2025",
            "Juan,García,López,USD,3000.0,15000.0,USD,8.5,24,20/12/25",
        ],
    )
    def test_malformed_row_is_fatal(self, write_csv, row) -> None:
        path = write_csv([row])

        with RecordSource(path) as source:
            with pytest.raises(RecordReadError) as exc:
                source.read()

        assert exc.value.row_number == 1

    def test_error_names_the_field(self, write_csv, make_row) -> None:
        path = write_csv([make_row(), "Ana,Pérez,Ruiz,EUR,2000,9000,EUR,7,12,99/99/2025"])

        with RecordSource(path) as source:
            source.read()
            with pytest.raises(RecordReadError, match="Row 2: disbursementDate"):
                source.read()

    def test_too_many_columns(self, write_csv, make_row) -> None:
        path = write_csv([make_row(), make_row() + ",extra"])

        with RecordSource(path) as source:
            with pytest.raises(RecordReadError):
                list(source)


class TestSourceValidation:

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            RecordSource(tmp_path / "nope.csv").open()

    def test_unsupported_suffix(self, tmp_path) -> None:
        path = tmp_path / "clients.xlsx"
        path.write_bytes(b"")

        with pytest.raises(ValueError, match="Unsupported file type"):
            RecordSource(path).open()


class TestParquetRecordSource:

    @pytest.fixture
    def parquet_path(self, tmp_path):
        df = pd.DataFrame(
            {
                "firstName": ["Juan", "María"],
                "paternalLastName": ["García", "Fernández"],
                "maternalLastName": ["López", "González"],
                "currencyOfIncome": ["USD", "EUR"],
                "monthlyIncome": [3000.0, 4500.5],
                "loanAmount": [15000.0, 20000.0],
                "currency": ["USD", "EUR"],
                "interestRate": [8.5, 6.0],
                "term": [24, 36],
                "disbursementDate": ["20/12/2025", "22/12/2025"],
            }
        )
        path = tmp_path / "clients.parquet"
        df.to_parquet(path, index=False)
        return path

    def test_reads_all_rows(self, parquet_path) -> None:
        with RecordSource(parquet_path) as source:
            records = list(source)

        assert [r.first_name for r in records] == ["Juan", "María"]
        assert records[1].monthly_income == 4500.5
        assert records[1].term == 36
        assert records[1].disbursement_date == date(2025, 12, 22)

    def test_missing_column(self, tmp_path) -> None:
        df = pd.DataFrame({c: ["x"] for c in COLUMNS if c != "term"})
        path = tmp_path / "broken.parquet"
        df.to_parquet(path, index=False)

        with RecordSource(path) as source:
            with pytest.raises(RecordReadError, match="term"):
                source.read()
