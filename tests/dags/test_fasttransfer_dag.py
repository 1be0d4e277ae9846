"""
Tests for the FastTransfer Table Copy DAG

Validates that the DAG parses and wires the operator as expected.
"""

import os
import sys
import pytest

# Add plugins directory to path for imports (Airflow does this at runtime)
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..', 'plugins')))

from airflow.models import DagBag

DAGS_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..', 'dags'))


class TestFastTransferDag:
    """Test DAG integrity."""

    @pytest.fixture(scope="class")
    def dag_bag(self):
        """Create a DagBag for testing."""
        return DagBag(dag_folder=DAGS_DIR, include_examples=False)

    def test_no_import_errors(self, dag_bag):
        assert dag_bag.import_errors == {}

    def test_dag_has_expected_params(self, dag_bag):
        dag = dag_bag.get_dag("fasttransfer_table_copy")
        assert dag is not None

        for param in ["source_conn_id", "target_conn_id", "source_table", "target_table",
                      "degree", "method", "load_mode", "batch_size"]:
            assert param in dag.params, f"Missing expected parameter: {param}"

    def test_task_flow(self, dag_bag):
        dag = dag_bag.get_dag("fasttransfer_table_copy")
        task_ids = [task.task_id for task in dag.tasks]
        assert sorted(task_ids) == ["log_transfer_summary", "run_fasttransfer"]

        transfer = dag.get_task("run_fasttransfer")
        assert transfer.use_work_tables is True
        assert transfer.license == "{{ var.value.get('fasttransfer_license', '') }}"
        assert "log_transfer_summary" in transfer.downstream_task_ids
