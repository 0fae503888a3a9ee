"""
config.py - Configuration Management
=====================================
This module loads the batch settings from environment variables.
It reads a .env file from the project root and returns a Settings object
that the rest of the application receives explicitly.

Environment Variables Used:
---------------------------
- LOANBATCH_SIMULATION_BASE_URL : (Optional) Base URL of the service that registers
                                  clients and creates simulations
                                  (default: "http://localhost:8081/api-simulation-loans")
- LOANBATCH_LOAN_BASE_URL       : (Optional) Base URL of the loan generation service
                                  (default: "http://localhost:8082/api-generation-loans")
- LOANBATCH_TIMEOUT_SEC         : (Optional) Request timeout in seconds (default: 20)
- LOANBATCH_CHUNK_SIZE          : (Optional) Records per chunk (default: 5)
- LOANBATCH_MAX_WORKERS         : (Optional) Parallel items inside a chunk (default: 1)
- LOANBATCH_INPUT_FILE          : (Optional) Input CSV or Parquet file (default: "clients.csv")
- LOANBATCH_REPORT_PATH         : (Optional) Where the report is written (default: "report.txt")

Example .env file:
------------------
LOANBATCH_SIMULATION_BASE_URL=http://simulations.internal:8081/api-simulation-loans
LOANBATCH_LOAN_BASE_URL=http://loans.internal:8082/api-generation-loans
LOANBATCH_MAX_WORKERS=5
"""

from dataclasses import dataclass
import os
from pathlib import Path
from dotenv import load_dotenv

from .errors import ConfigurationError


DEFAULT_SIMULATION_BASE_URL = "http://localhost:8081/api-simulation-loans"
DEFAULT_LOAN_BASE_URL = "http://localhost:8082/api-generation-loans"


# =============================================================================
# SETTINGS DATACLASS
# =============================================================================

@dataclass
class Settings:
    """Container for all batch configuration values."""

    # Service that owns /api/clients and /simulations/client/{id}
    simulation_base_url: str = DEFAULT_SIMULATION_BASE_URL

    # Service that owns /loans/generate/simulation/{id}
    loan_base_url: str = DEFAULT_LOAN_BASE_URL

    # Applied to every outbound call; there is no retry
    timeout_sec: int = 20

    # Records read, processed and written as one unit
    chunk_size: int = 5

    # 1 = items of a chunk are processed one after another
    max_workers: int = 1

    input_file: str = "clients.csv"
    report_path: str = "report.txt"


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _clean(v: str | None) -> str | None:
    """
    Clean and normalize an environment variable value.

    Examples:
        _clean('  hello  ')     -> 'hello'
        _clean('"quoted"')      -> 'quoted'
        _clean('')              -> None
        _clean(None)            -> None
    """
    if v is None:
        return None

    v = v.strip()

    if (v.startswith('"') and v.endswith('"')) or (v.startswith("'") and v.endswith("'")):
        v = v[1:-1]

    return v if v else None


def _normalize_url(url: str) -> str:
    """Add a scheme when missing and drop the trailing slash."""
    if not url.startswith("http"):
        url = "http://" + url
    return url.rstrip("/")


def _positive_int(name: str, default: int) -> int:
    """Read a positive integer setting, raising ConfigurationError on bad input."""
    raw = _clean(os.getenv(name))
    if raw is None:
        return default

    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None

    if value < 1:
        raise ConfigurationError(f"{name} must be at least 1, got {value}")
    return value


# =============================================================================
# MAIN CONFIGURATION LOADER
# =============================================================================

def load_settings(env_file: Path | None = None) -> Settings:
    """
    Load batch configuration from environment variables.

    This function:
    1. Loads the .env file (project root unless env_file is given)
    2. Reads all LOANBATCH_* environment variables
    3. Cleans and validates the values
    4. Returns a Settings object

    Args:
        env_file: Optional explicit path to a .env file

    Returns:
        Settings: A dataclass containing all configuration values

    Raises:
        ConfigurationError: If a numeric setting is not a positive integer
    """
    # ---------------------------------------------------------------------
    # STEP 1: Load the .env file
    # ---------------------------------------------------------------------
    # Variables already present in the environment win over the file
    if env_file is None:
        env_file = Path(__file__).resolve().parents[1] / ".env"
    load_dotenv(dotenv_path=env_file)

    # ---------------------------------------------------------------------
    # STEP 2: Service URLs
    # ---------------------------------------------------------------------
    simulation_base = _clean(os.getenv("LOANBATCH_SIMULATION_BASE_URL")) or DEFAULT_SIMULATION_BASE_URL
    loan_base = _clean(os.getenv("LOANBATCH_LOAN_BASE_URL")) or DEFAULT_LOAN_BASE_URL

    # ---------------------------------------------------------------------
    # STEP 3: Build and return the Settings object
    # ---------------------------------------------------------------------
    return Settings(
        simulation_base_url=_normalize_url(simulation_base),
        loan_base_url=_normalize_url(loan_base),
        timeout_sec=_positive_int("LOANBATCH_TIMEOUT_SEC", 20),
        chunk_size=_positive_int("LOANBATCH_CHUNK_SIZE", 5),
        max_workers=_positive_int("LOANBATCH_MAX_WORKERS", 1),
        input_file=_clean(os.getenv("LOANBATCH_INPUT_FILE")) or "clients.csv",
        report_path=_clean(os.getenv("LOANBATCH_REPORT_PATH")) or "report.txt",
    )
