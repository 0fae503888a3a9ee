"""
loanbatch - Loan Batch Processor
=================================

Reads a batch of loan applicants, registers each one with the client
service, simulates the requested loan, generates the loan when the
simulation is approved, and writes a summary report.

Modules:
--------
- config.py      : Configuration management (loads settings from .env)
- models.py      : ApplicantRecord and its request payloads
- loader.py      : Input file reading (CSV/Parquet) and type coercion
- http_client.py : HTTP client for the loan services
- endpoints.py   : Service URL layout
- processor.py   : Client -> simulation -> loan orchestration per record
- chunk.py       : Chunked read/process/write loop and run counters
- report.py      : Report aggregation and rendering
- run_batch.py   : Main entry point

Usage:
------
    python -m loanbatch.run_batch clients.csv
    python -m loanbatch.run_batch clients.csv --report out/report.txt
    python -m loanbatch.run_batch clients.csv --dry-run

Workflow:
---------
1. Load configuration from .env file
2. Read the input file in chunks of 5 records
3. For each record: register client, create simulation, generate loan if approved
4. Records whose service calls fail are dropped; the run continues
5. Write the report once the last chunk is done
"""

__version__ = "0.1.0"
