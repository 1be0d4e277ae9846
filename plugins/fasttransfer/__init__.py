"""
FastTransfer Airflow Plugin

This package runs the FastTransfer data-movement binary as an Airflow task:
it stages the binary to a temporary file, builds the command line from the
task's options, runs the process and returns its merged output and exit code.

Modules:
- parameters: Ordered option table and command line construction
- staging: Stage the binary to a unique, executable temp file
- runner: Run the process, capture output, classify the exit code
- options: FastTransfer option names, flags and validation
- connections: Fill source/target options from Airflow connections
- operators: FastTransferOperator
- errors: Exception types
- config: Environment variable settings

Configuration:
- FASTTRANSFER_BINARY_PATH=/opt/fasttransfer/FastTransfer: binary to stage
- FASTTRANSFER_TIMEOUT=N: kill the process after N seconds
- FASTTRANSFER_TEMP_DIR=/path: where staged binaries are written
- FASTTRANSFER_LOG_OUTPUT=false: do not copy process output to the task log
"""

__version__ = "1.0.0"

# Core modules
from fasttransfer import errors
from fasttransfer import config
from fasttransfer import parameters
from fasttransfer import staging
from fasttransfer import runner
from fasttransfer import options

# Airflow-dependent modules (loaded by the DAG)
# from fasttransfer import connections
# from fasttransfer import operators

__all__ = [
    "errors",
    "config",
    "parameters",
    "staging",
    "runner",
    "options",
    "connections",
    "operators",
]
