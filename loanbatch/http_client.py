"""
http_client.py - HTTP Client for the Loan Services
===================================================
This module handles all HTTP communication with the client, simulation
and loan services.

Behaviour:
----------
- One requests.Session per run (connection pooling)
- JSON request bodies and JSON Accept header
- Configurable timeout on every call
- No retry: a failed call is final for the item that made it
- Transport errors are returned as status 0 instead of raised, so callers
  only ever look at (status, content_type, body)
"""

import logging
from typing import Any, Dict, Optional, Tuple

import requests

from .config import Settings


logger = logging.getLogger(__name__)

# (status_code, content_type, body)
Response = Tuple[int, str, str]


# =============================================================================
# HTTP CLIENT CLASS
# =============================================================================

class HttpClient:
    """
    HTTP client for the loan services.

    Usage:
        client = HttpClient(settings)
        status, content_type, body = client.post_json(
            "http://localhost:8081/api-simulation-loans/api/clients",
            {"firstName": "Juan", ...},
        )
        client.close()
    """

    def __init__(self, settings: Settings):
        """
        Initialize the HTTP client.

        Args:
            settings: Configuration object; only the timeout is used here
        """
        self.settings = settings
        self.s = requests.Session()
        self.s.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
        })
        self.timeout = settings.timeout_sec

    # -------------------------------------------------------------------------
    # API REQUEST METHODS
    # -------------------------------------------------------------------------

    def post_json(self, url: str, payload: Optional[Dict[str, Any]] = None) -> Response:
        """
        POST a JSON body to a full URL.

        Args:
            url: Absolute endpoint URL
            payload: JSON-serializable body, or None to send an empty body

        Returns:
            A tuple of (status_code, content_type, body). On a transport
            failure (timeout, connection refused, DNS) status_code is 0 and
            body describes the error.
        """
        try:
            r = self.s.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.debug(f"Transport failure on POST {url}: {e}")
            return 0, "", f"Network error: {type(e).__name__}: {e}"

        return (
            r.status_code,
            r.headers.get("content-type", ""),
            r.text or "",
        )

    # -------------------------------------------------------------------------
    # CLEANUP METHODS
    # -------------------------------------------------------------------------

    def close(self):
        """Close the HTTP session and release pooled connections."""
        self.s.close()
