"""
FastTransfer Operator

Airflow operator that runs the FastTransfer binary as one pipeline step.
FastTransfer moves data between heterogeneous sources and targets using
parallel extraction and bulk loading; see the FastTransfer documentation for
the meaning of each option (https://www.arpe.io/fasttransfer/).

Example:
    FastTransferOperator(
        task_id="copy_orders",
        source_connection_type="mssql",
        source_server="localhost,11433",
        source_user="FastTransfer_Login",
        source_password="{{ var.value.ft_source_password }}",
        source_database="tpch10",
        source_schema="dbo",
        source_table="orders",
        target_connection_type="msbulk",
        target_conn_id="mssql_target",
        target_schema="dbo",
        target_table="orders2",
        degree=12,
        method="Ntile",
        distribute_key_column="o_orderkey",
        load_mode="Truncate",
        map_method="Position",
        batch_size=1048576,
        use_work_tables=True,
        license="{{ var.value.fasttransfer_license }}",
    )

The return value ({"logs": ..., "exitCode": ...}) is pushed to XCom.
"""

from typing import Any, Dict, Optional
from airflow.models import BaseOperator
import logging

from fasttransfer import config
from fasttransfer.connections import merge_connection_options
from fasttransfer.options import (
    FASTTRANSFER_OPTIONS,
    OPTION_NAMES,
    build_parameter_spec,
    validate_option_values,
)
from fasttransfer.parameters import ParameterKind, Template, TemplateRenderContext
from fasttransfer.runner import ProcessRunner
from fasttransfer.staging import FilePayloadSource, PackageResourceSource, PayloadSource

logger = logging.getLogger(__name__)

PACKAGED_BINARY = ("fasttransfer", "bin/FastTransfer")

# Secrets are rendered at execute time only, so they never show up in the
# Rendered Template view
_SECRET_OPTIONS = tuple(o.name for o in FASTTRANSFER_OPTIONS if o.kind is ParameterKind.SECRET)
# Flags are templated too; Airflow leaves real bools untouched
_TEMPLATED_OPTIONS = tuple(o.name for o in FASTTRANSFER_OPTIONS if o.kind is not ParameterKind.SECRET)


class FastTransferOperator(BaseOperator):
    """
    Run one FastTransfer data movement.

    Every FastTransfer option is accepted as a keyword argument named after
    the option in snake_case (source_server, batch_size, use_work_tables, ...).

    Args:
        source_conn_id: Airflow connection to fill source_* options from
        target_conn_id: Airflow connection to fill target_* options from
        binary_path: FastTransfer binary to stage (default: FASTTRANSFER_BINARY_PATH,
                     then the binary packaged with the plugin)
        process_timeout: Seconds before the process is killed
                         (default: FASTTRANSFER_TIMEOUT, else no timeout)
        temp_dir: Directory to stage the binary in (default: FASTTRANSFER_TEMP_DIR)
    """

    template_fields = ("source_conn_id", "target_conn_id") + _TEMPLATED_OPTIONS
    template_fields_renderers = {"query": "sql", "data_driven_query": "sql"}
    ui_color = "#e8f4fd"

    def __init__(
        self,
        *,
        source_conn_id: Optional[str] = None,
        target_conn_id: Optional[str] = None,
        binary_path: Optional[str] = None,
        process_timeout: Optional[float] = None,
        temp_dir: Optional[str] = None,
        **kwargs,
    ):
        option_values = {name: kwargs.pop(name, None) for name in OPTION_NAMES}
        super().__init__(**kwargs)
        self.source_conn_id = source_conn_id
        self.target_conn_id = target_conn_id
        self.binary_path = binary_path
        self.process_timeout = process_timeout
        self.temp_dir = temp_dir
        for name, value in option_values.items():
            setattr(self, name, value)

    def _payload_source(self) -> PayloadSource:
        path = self.binary_path or config.get_binary_path()
        if path:
            return FilePayloadSource(path)
        return PackageResourceSource(*PACKAGED_BINARY)

    def _option_values(self) -> Dict[str, Any]:
        values = {name: getattr(self, name) for name in OPTION_NAMES}
        for name in _SECRET_OPTIONS:
            if isinstance(values[name], str) and values[name]:
                values[name] = Template(values[name])
        return merge_connection_options(values, self.source_conn_id, self.target_conn_id)

    def execute(self, context: Dict[str, Any]) -> Dict[str, Any]:
        values = self._option_values()
        validate_option_values(values)
        spec = build_parameter_spec(values)

        timeout = self.process_timeout
        if timeout is None:
            timeout = config.get_process_timeout()

        runner = ProcessRunner(
            self._payload_source(),
            name_hint="fasttransfer",
            timeout=timeout,
            temp_dir=self.temp_dir or config.get_temp_dir(),
            log_output=config.log_output_enabled(),
        )
        result = runner.execute(spec, TemplateRenderContext(self.render_template, context))
        return result.to_dict()
