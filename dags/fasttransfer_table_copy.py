"""
FastTransfer Table Copy DAG

Copies one table between two databases with the FastTransfer binary:
1. Run FastTransfer with the source/target options from the DAG params
2. Log a summary of the transfer output

Credentials come from Airflow connections (source_conn_id / target_conn_id);
the license key is read from the 'fasttransfer_license' Airflow Variable at
run time so it never appears in the rendered task fields.

Set FASTTRANSFER_BINARY_PATH on the workers if the binary is not packaged
with the plugin.
"""

from airflow.decorators import dag, task
from airflow.models.param import Param
from pendulum import datetime
from datetime import timedelta
from typing import Any, Dict
import logging

from fasttransfer.operators import FastTransferOperator

logger = logging.getLogger(__name__)


@dag(
    dag_id="fasttransfer_table_copy",
    start_date=datetime(2025, 1, 1),
    schedule=None,
    catchup=False,
    max_active_runs=1,
    is_paused_upon_creation=False,
    doc_md=__doc__,
    default_args={
        "owner": "data-team",
        "retries": 1,
        "retry_delay": timedelta(minutes=1),
    },
    params={
        "source_conn_id": Param(
            default="mssql_source",
            type="string",
            description="Source database connection ID"
        ),
        "target_conn_id": Param(
            default="mssql_target",
            type="string",
            description="Target database connection ID"
        ),
        "source_connection_type": Param(
            default="mssql",
            type="string",
            description="FastTransfer source connection type (e.g., mssql, pgsql, mysql, oraodp)"
        ),
        "target_connection_type": Param(
            default="msbulk",
            type="string",
            description="FastTransfer target connection type (e.g., msbulk, pgcopy, mysqlbulk)"
        ),
        "source_schema": Param(default="dbo", type="string", description="Source schema"),
        "source_table": Param(default="orders", type="string", description="Source table"),
        "target_schema": Param(default="dbo", type="string", description="Target schema"),
        "target_table": Param(default="orders2", type="string", description="Target table"),
        "degree": Param(default=12, type="integer", minimum=0, description="Degree of parallelism (0 = Auto)"),
        "method": Param(
            default="Ntile",
            type="string",
            enum=["None", "Random", "DataDriven", "Ntile", "Ctid", "Rowid", "RangeId", "NZDataSlice"],
            description="Parallel split method"
        ),
        "distribute_key_column": Param(
            default="o_orderkey",
            type="string",
            description="Column used to distribute data across parallel readers"
        ),
        "load_mode": Param(default="Truncate", type="string", enum=["Append", "Truncate"]),
        "map_method": Param(default="Position", type="string", enum=["Position", "Name"]),
        "batch_size": Param(default=1048576, type="integer", minimum=1, description="Bulk copy batch size"),
    },
    tags=["fasttransfer", "transfer", "bulk"],
)
def fasttransfer_table_copy():
    """Table copy DAG: one FastTransfer run plus a summary."""

    transfer = FastTransferOperator(
        task_id="run_fasttransfer",
        source_conn_id="{{ params.source_conn_id }}",
        target_conn_id="{{ params.target_conn_id }}",
        source_connection_type="{{ params.source_connection_type }}",
        source_schema="{{ params.source_schema }}",
        source_table="{{ params.source_table }}",
        target_connection_type="{{ params.target_connection_type }}",
        target_schema="{{ params.target_schema }}",
        target_table="{{ params.target_table }}",
        degree="{{ params.degree }}",
        method="{{ params.method }}",
        distribute_key_column="{{ params.distribute_key_column }}",
        load_mode="{{ params.load_mode }}",
        map_method="{{ params.map_method }}",
        batch_size="{{ params.batch_size }}",
        use_work_tables=True,
        run_id="{{ run_id }}",
        license="{{ var.value.get('fasttransfer_license', '') }}",
    )

    @task
    def log_transfer_summary(result: Dict[str, Any]) -> str:
        """Log the tail of the FastTransfer output."""
        lines = (result.get("logs") or "").splitlines()
        summary = f"FastTransfer finished with exit code {result.get('exitCode')} ({len(lines)} output lines)"
        logger.info(summary)

        for line in lines[-10:]:
            logger.info(f"  {line}")

        return summary

    # Task flow
    log_transfer_summary(transfer.output)


# Instantiate
fasttransfer_table_copy()
