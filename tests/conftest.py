"""Pytest configuration and fixtures."""

import json
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

from loanbatch.config import Settings
from loanbatch.endpoints import Endpoints
from loanbatch.processor import LoanProcessor


HEADER = (
    "firstName,paternalLastName,maternalLastName,currencyOfIncome,monthlyIncome,"
    "loanAmount,currency,interestRate,term,disbursementDate"
)


def applicant_row(first_name: str = "Juan", currency: str = "USD") -> str:
    return f"{first_name},García,López,{currency},3000.0,15000.0,{currency},8.5,24,20/12/2025"


class FakeServices:
    """
    Scripted stand-in for HttpClient covering all three services.

    Ids are derived from arrival order: the n-th client gets clientId n,
    its simulation is n * 100 and its loan n * 100 + 100 (so the first
    applicant gets 1 / 100 / 200).
    """

    def __init__(self):
        self.calls: List[Tuple[str, Optional[Dict[str, Any]]]] = []
        self.overrides: Dict[Tuple[str, str], Tuple[int, str, str]] = {}
        self.rejected = set()
        self.existing = set()
        self.monthly_payment = 681.84
        self.due_date = "2026-01-20"
        self._names: Dict[int, str] = {}
        self._lock = threading.Lock()

    def override(self, stage: str, first_name: str, status: int, body: Any = ""):
        """Answer `stage` for `first_name` with a fixed status and body."""
        if not isinstance(body, str):
            body = json.dumps(body)
        self.overrides[(stage, first_name)] = (status, "application/json", body)

    def stage_calls(self, stage: str) -> List[Tuple[str, Optional[Dict[str, Any]]]]:
        marker = {
            "client": "/api/clients",
            "simulation": "/simulations/client/",
            "loan": "/loans/generate/simulation/",
        }[stage]
        return [call for call in self.calls if marker in call[0]]

    def post_json(self, url: str, payload: Optional[Dict[str, Any]] = None):
        with self._lock:
            self.calls.append((url, payload))
            last = url.rsplit("/", 1)[-1]

            if url.endswith("/api/clients"):
                return self._client(payload)
            if "/simulations/client/" in url:
                return self._simulation(int(last), payload)
            if "/loans/generate/simulation/" in url:
                return self._loan(int(last))
        return 404, "text/plain", "no route"

    def close(self):
        pass

    def _client(self, payload):
        client_id = len(self._names) + 1
        name = payload["firstName"]
        self._names[client_id] = name
        if ("client", name) in self.overrides:
            return self.overrides[("client", name)]

        status = 200 if name in self.existing else 201
        message = "User already exist" if status == 200 else "Client created successfully"
        body = [message, dict(payload, clientId=client_id)]
        return status, "application/json", json.dumps(body)

    def _simulation(self, client_id, payload):
        name = self._names[client_id]
        if ("simulation", name) in self.overrides:
            return self.overrides[("simulation", name)]

        approved = name not in self.rejected
        sim = dict(
            payload,
            simulationId=client_id * 100,
            approved=approved,
            monthlyPayment=self.monthly_payment,
            totalPayment=round(self.monthly_payment * payload["term"], 2),
            clientId=client_id,
        )
        message = "Loan simulation approved" if approved else "Loan simulation rejected"
        return 200, "application/json", json.dumps([message, sim])

    def _loan(self, simulation_id):
        name = self._names[simulation_id // 100]
        if ("loan", name) in self.overrides:
            return self.overrides[("loan", name)]

        loan = {
            "loanId": simulation_id + 100,
            "status": 1,
            "payment": [
                {"paymentNumber": 1, "installment": self.monthly_payment, "dueDate": self.due_date},
                {"paymentNumber": 2, "installment": self.monthly_payment, "dueDate": "2026-02-20"},
            ],
        }
        return 200, "application/json", json.dumps(loan)


@pytest.fixture
def services() -> FakeServices:
    """Fresh scripted services for each test."""
    return FakeServices()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing the input and report into tmp_path."""
    return Settings(
        input_file=str(tmp_path / "clients.csv"),
        report_path=str(tmp_path / "report.txt"),
    )


@pytest.fixture
def processor(services: FakeServices, settings: Settings) -> LoanProcessor:
    return LoanProcessor(services, Endpoints(settings))


@pytest.fixture
def write_csv(tmp_path: Path):
    """Write data rows (header added) and return the file path."""

    def _write(rows: List[str], name: str = "clients.csv", header: str = HEADER) -> Path:
        path = tmp_path / name
        path.write_text("\n".join([header] + rows) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_row():
    """Build a CSV data row for an applicant; the Juan García López scenario by default."""
    return applicant_row


@pytest.fixture
def make_services():
    """Factory for additional independent FakeServices instances."""
    return FakeServices
