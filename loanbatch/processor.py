"""
processor.py - Per-Record Orchestration
========================================
Runs one ApplicantRecord through the three dependent service calls:

    1. Register (or find) the client        -> client_id
    2. Create a loan simulation             -> simulation_id, approved, payments
    3. Generate the loan (approved only)    -> loan_id, next_payment_date

Each stage returns a StageOutcome:
- CONTINUE : run the next stage
- COMPLETE : stop here and forward the record (e.g. simulation not approved)
- DROP     : stop here and discard the record

Any failure inside a stage (transport error, unexpected status, missing or
malformed field) is a StageError, which process() turns into DROP. Nothing
created remotely by earlier stages is undone.
"""

import json
import logging
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .endpoints import Endpoints
from .errors import StageError
from .http_client import HttpClient
from .models import ApplicantRecord


logger = logging.getLogger(__name__)


# Stage 1 treats "created" and "already exists" the same way
CLIENT_OK_STATUSES = (200, 201)

# How much of an error body ends up in the log line
BODY_SNIPPET = 200


class StageOutcome(Enum):
    CONTINUE = "continue"
    COMPLETE = "complete"
    DROP = "drop"


Stage = Callable[[ApplicantRecord], StageOutcome]


# =============================================================================
# RESPONSE HELPERS
# =============================================================================

def _unwrap(stage: str, data: Any) -> Dict[str, Any]:
    """
    Return the payload object of a service response.

    The client and simulation services answer with a [message, object]
    pair; the loan service answers with the object alone.
    """
    if isinstance(data, dict):
        return data

    if isinstance(data, list):
        for item in reversed(data):
            if isinstance(item, dict):
                return item

    raise StageError(stage, f"unexpected response shape: {str(data)[:BODY_SNIPPET]}")


def _field(stage: str, obj: Dict[str, Any], name: str) -> Any:
    """
    Return a required field of a response object.

    Args:
        stage: Stage name reported if the field is absent
        obj: Unwrapped response object
        name: Wire name of the field (e.g. 'clientId')

    Raises:
        StageError: If the field is missing or null
    """
    value = obj.get(name)
    if value is None:
        raise StageError(stage, f"response is missing '{name}'")
    return value


def _int_field(stage: str, obj: Dict[str, Any], name: str) -> int:
    """Return a required id field as an int; booleans are rejected."""
    value = _field(stage, obj, name)
    if isinstance(value, bool):
        raise StageError(stage, f"'{name}' is not an id: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise StageError(stage, f"'{name}' is not an id: {value!r}") from None


def _float_field(stage: str, obj: Dict[str, Any], name: str) -> float:
    """Return a required numeric field as a float; booleans are rejected."""
    value = _field(stage, obj, name)
    if isinstance(value, bool):
        raise StageError(stage, f"'{name}' is not a number: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise StageError(stage, f"'{name}' is not a number: {value!r}") from None


# =============================================================================
# PROCESSOR
# =============================================================================

class LoanProcessor:
    """
    Enrich one record through the client, simulation and loan services.

    Usage:
        processor = LoanProcessor(HttpClient(settings), Endpoints(settings))
        result = processor.process(record)   # ApplicantRecord or None
    """

    def __init__(self, client: HttpClient, endpoints: Endpoints):
        self.client = client
        self.endpoints = endpoints
        self.stages: List[Tuple[str, Stage]] = [
            ("client", self.register_client),
            ("simulation", self.create_simulation),
            ("loan", self.generate_loan),
        ]

    def process(self, record: ApplicantRecord) -> Optional[ApplicantRecord]:
        """
        Run the stage chain for one record.

        Returns:
            The enriched record when it should be reported, None when it
            was dropped. Never raises for item-level failures.
        """
        for name, stage in self.stages:
            outcome = self._run_stage(name, stage, record)

            if outcome is StageOutcome.DROP:
                return None
            if outcome is StageOutcome.COMPLETE:
                return record

        return record

    def _run_stage(self, name: str, stage: Stage, record: ApplicantRecord) -> StageOutcome:
        """
        Run one stage, turning a StageError into a logged DROP.

        Returns:
            The stage's own outcome, or StageOutcome.DROP on failure
        """
        try:
            return stage(record)
        except StageError as e:
            logger.warning(
                f"Dropping {record.first_name} {record.paternal_last_name} "
                f"at stage '{name}': {e}"
            )
            return StageOutcome.DROP

    # -------------------------------------------------------------------------
    # TRANSPORT
    # -------------------------------------------------------------------------

    def _post(
        self,
        stage: str,
        url: str,
        payload: Optional[Dict[str, Any]],
        ok_statuses: Optional[Tuple[int, ...]] = None,
    ) -> Tuple[int, Any]:
        """
        POST and decode the JSON body, raising StageError on any failure.

        Args:
            ok_statuses: Exact statuses accepted; any 2xx when None
        """
        status, _content_type, body = self.client.post_json(url, payload)

        if status == 0:
            raise StageError(stage, body)

        accepted = status in ok_statuses if ok_statuses else 200 <= status < 300
        if not accepted:
            raise StageError(stage, f"HTTP {status}: {body[:BODY_SNIPPET].strip()}")

        try:
            return status, json.loads(body)
        except ValueError as e:
            raise StageError(stage, f"invalid JSON response: {e}") from None

    # -------------------------------------------------------------------------
    # STAGES
    # -------------------------------------------------------------------------

    def register_client(self, record: ApplicantRecord) -> StageOutcome:
        status, data = self._post(
            "client",
            self.endpoints.client_url,
            record.client_payload(),
            ok_statuses=CLIENT_OK_STATUSES,
        )
        client_id = _int_field("client", _unwrap("client", data), "clientId")
        record.client_id = client_id

        if status == 201:
            logger.info(f"Client created: id={client_id} name={record.first_name}")
        else:
            logger.info(f"Client already exists: id={client_id} name={record.first_name}")
        return StageOutcome.CONTINUE

    def create_simulation(self, record: ApplicantRecord) -> StageOutcome:
        _status, data = self._post(
            "simulation",
            self.endpoints.simulation_url(record.client_id),
            record.simulation_payload(),
        )
        sim = _unwrap("simulation", data)

        simulation_id = _int_field("simulation", sim, "simulationId")
        approved = _field("simulation", sim, "approved")
        if not isinstance(approved, bool):
            raise StageError("simulation", f"'approved' is not a boolean: {approved!r}")
        monthly_payment = _float_field("simulation", sim, "monthlyPayment")
        total_payment = _float_field("simulation", sim, "totalPayment")

        record.simulation_id = simulation_id
        record.approved = approved
        record.monthly_payment = monthly_payment
        record.total_payment = total_payment

        logger.info(
            f"Simulation created for client {record.client_id} | "
            f"simulationId: {simulation_id} | approved: {approved}"
        )

        if not approved:
            logger.info(f"Simulation not approved for client {record.client_id}; no loan generated")
            return StageOutcome.COMPLETE
        return StageOutcome.CONTINUE

    def generate_loan(self, record: ApplicantRecord) -> StageOutcome:
        _status, data = self._post(
            "loan",
            self.endpoints.loan_url(record.simulation_id),
            None,
        )
        loan = _unwrap("loan", data)

        loan_id = _int_field("loan", loan, "loanId")
        schedule = loan.get("payment")
        if not isinstance(schedule, list) or not schedule or not isinstance(schedule[0], dict):
            raise StageError("loan", "response has no payment schedule")

        due = _field("loan", schedule[0], "dueDate")
        try:
            next_payment_date = date.fromisoformat(str(due))
        except ValueError:
            raise StageError("loan", f"'dueDate' is not an ISO date: {due!r}") from None

        record.apply_loan(loan_id, next_payment_date)
        logger.info(f"Loan created: loanId: {loan_id} for simulation: {record.simulation_id}")
        return StageOutcome.COMPLETE
