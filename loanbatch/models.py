"""
models.py - Applicant Record
=============================
One ApplicantRecord is created per input row by the loader. The processor
fills in the server-assigned fields stage by stage; once a record reaches
the report it is no longer modified.

Field groups:
-------------
- Identity      : first_name, paternal_last_name, maternal_last_name
- Income        : currency_of_income, monthly_income
- Loan request  : loan_amount, currency, interest_rate, term, disbursement_date
- Server fields : client_id, simulation_id, approved, monthly_payment,
                  total_payment, loan_id, next_payment_date, total_interest
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional


# Wire format for dates sent to and shown from the services
DATE_FORMAT = "%d/%m/%Y"


@dataclass
class ApplicantRecord:
    """A single applicant row plus whatever the remote services assigned to it."""

    first_name: str
    paternal_last_name: str
    maternal_last_name: str
    currency_of_income: str
    monthly_income: float
    loan_amount: float
    currency: str
    interest_rate: float
    term: int
    disbursement_date: date

    # Set by stage 1 (client registration)
    client_id: Optional[int] = None

    # Set by stage 2 (simulation)
    simulation_id: Optional[int] = None
    approved: Optional[bool] = None
    monthly_payment: Optional[float] = None
    total_payment: Optional[float] = None

    # Set by stage 3 (loan generation), always together
    loan_id: Optional[int] = None
    next_payment_date: Optional[date] = None
    total_interest: Optional[float] = None

    @property
    def has_loan(self) -> bool:
        return self.loan_id is not None

    def client_payload(self) -> Dict[str, Any]:
        """Body for the client registration call (identity + income)."""
        return {
            "firstName": self.first_name,
            "paternalLastName": self.paternal_last_name,
            "maternalLastName": self.maternal_last_name,
            "currencyOfIncome": self.currency_of_income,
            "monthlyIncome": self.monthly_income,
        }

    def simulation_payload(self) -> Dict[str, Any]:
        """Body for the simulation call; the date goes out as dd/MM/yyyy."""
        return {
            "loanAmount": self.loan_amount,
            "currency": self.currency,
            "interestRate": self.interest_rate,
            "term": self.term,
            "disbursementDate": self.disbursement_date.strftime(DATE_FORMAT),
        }

    def apply_loan(self, loan_id: int, next_payment_date: date) -> None:
        """
        Record a generated loan and derive the total interest.

        total_interest = monthly_payment * term - loan_amount
        """
        self.loan_id = loan_id
        self.next_payment_date = next_payment_date
        self.total_interest = self.monthly_payment * self.term - self.loan_amount
