"""
FastTransfer Option Table

Declares the command-line options of the FastTransfer binary in the order
they are emitted. Flag names are passed through verbatim; their meaning is
documented by the binary itself (https://www.arpe.io/fasttransfer/).
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple
import logging

from fasttransfer.parameters import ParameterEntry, ParameterKind, ParameterSpec

logger = logging.getLogger(__name__)

VALUE = ParameterKind.VALUE
FLAG = ParameterKind.FLAG
SECRET = ParameterKind.SECRET


@dataclass(frozen=True)
class OptionDef:
    name: str
    flag: str
    kind: ParameterKind
    value_type: type
    description: str


FASTTRANSFER_OPTIONS: Tuple[OptionDef, ...] = (
    OptionDef("source_connection_type", "--sourceconnectiontype", VALUE, str,
              "Source connection type (e.g., mssql, pgsql, mysql)"),
    OptionDef("source_connect_string", "--sourceconnectstring", VALUE, str, "Connection string for source"),
    OptionDef("source_dsn", "--sourcedsn", VALUE, str, "ODBC Data Source Name"),
    OptionDef("source_provider", "--sourceprovider", VALUE, str, "OLE DB provider (e.g., MSOLEDBSQL)"),
    OptionDef("source_server", "--sourceserver", VALUE, str, "Source server address"),
    OptionDef("source_user", "--sourceuser", VALUE, str, "Username for source connection"),
    OptionDef("source_password", "--sourcepassword", SECRET, str, "Password for source connection"),
    OptionDef("source_trusted", "--sourcetrusted", FLAG, bool, "Use trusted authentication for source"),
    OptionDef("source_database", "--sourcedatabase", VALUE, str, "Source database name"),
    OptionDef("source_schema", "--sourceschema", VALUE, str, "Source schema name"),
    OptionDef("source_table", "--sourcetable", VALUE, str, "Source table name"),
    OptionDef("query", "--query", VALUE, str, "Plain SQL query to execute"),
    OptionDef("file_input", "--fileinput", VALUE, str, "File containing SQL query"),
    OptionDef("target_connection_type", "--targetconnectiontype", VALUE, str,
              "Target connection type (e.g., pgcopy, mysqlbulk)"),
    OptionDef("target_connect_string", "--targetconnectstring", VALUE, str, "Connection string for target"),
    OptionDef("target_server", "--targetserver", VALUE, str, "Target server address"),
    OptionDef("target_user", "--targetuser", VALUE, str, "Username for target connection"),
    OptionDef("target_password", "--targetpassword", SECRET, str, "Password for target connection"),
    OptionDef("target_trusted", "--targettrusted", FLAG, bool, "Use trusted authentication for target"),
    OptionDef("target_database", "--targetdatabase", VALUE, str, "Target database name"),
    OptionDef("target_schema", "--targetschema", VALUE, str, "Target schema name"),
    OptionDef("target_table", "--targettable", VALUE, str, "Target table name"),
    OptionDef("degree", "--degree", VALUE, int, "Degree of parallelism (0 = Auto)"),
    OptionDef("method", "--method", VALUE, str, "Parallel split method (e.g., Random, DataDriven, Ntile, None)"),
    OptionDef("distribute_key_column", "--distributekeycolumn", VALUE, str, "Column used to distribute data"),
    OptionDef("data_driven_query", "--datadrivenquery", VALUE, str,
              "SQL query to retrieve data-driven values"),
    OptionDef("load_mode", "--loadmode", VALUE, str, "Load mode (Append or Truncate)"),
    OptionDef("batch_size", "--batchsize", VALUE, int, "Batch size for bulk copy"),
    OptionDef("use_work_tables", "--useworktables", FLAG, bool, "Use intermediate work tables"),
    OptionDef("run_id", "--runid", VALUE, str, "Run identifier for logging"),
    OptionDef("settings_file", "--settingsfile", VALUE, str, "Path to settings file"),
    OptionDef("map_method", "--mapmethod", VALUE, str, "Mapping method for columns (Position or Name)"),
    OptionDef("license", "--license", SECRET, str,
              "Path or URL of the license file (default: FastTransfer.lic next to the binary)"),
)

OPTIONS_BY_NAME: Dict[str, OptionDef] = {opt.name: opt for opt in FASTTRANSFER_OPTIONS}

OPTION_NAMES: Tuple[str, ...] = tuple(opt.name for opt in FASTTRANSFER_OPTIONS)

LOAD_MODES = ("Append", "Truncate")
MAP_METHODS = ("Position", "Name")


def _is_template(value: Any) -> bool:
    return isinstance(value, str) and "{{" in value


def _as_int(name: str, value: Any) -> Optional[int]:
    if value is None or value == "" or _is_template(value):
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid {name} {value!r}: must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {name} {value!r}: must be an integer")


def validate_option_values(values: Mapping[str, Any]) -> None:
    """
    Check option values the binary documents a fixed domain for.

    Template strings are skipped; they are only known after rendering.

    Raises:
        ValueError: If a name is unknown or a value is out of range
    """
    unknown = sorted(set(values) - set(OPTIONS_BY_NAME))
    if unknown:
        raise ValueError(f"Unknown FastTransfer option(s): {', '.join(unknown)}")

    degree = _as_int("degree", values.get("degree"))
    if degree is not None and degree < 0:
        raise ValueError(f"Invalid degree {degree}: must be >= 0 (0 = Auto)")

    batch_size = _as_int("batch_size", values.get("batch_size"))
    if batch_size is not None and batch_size <= 0:
        raise ValueError(f"Invalid batch_size {batch_size}: must be > 0")

    load_mode = values.get("load_mode")
    if load_mode and not _is_template(load_mode) and load_mode not in LOAD_MODES:
        raise ValueError(f"Invalid load_mode '{load_mode}': must be one of {', '.join(LOAD_MODES)}")

    map_method = values.get("map_method")
    if map_method and not _is_template(map_method) and map_method not in MAP_METHODS:
        raise ValueError(f"Invalid map_method '{map_method}': must be one of {', '.join(MAP_METHODS)}")


def build_parameter_spec(values: Mapping[str, Any]) -> ParameterSpec:
    """
    Build the ordered option table from keyword values.

    Every declared option is included (missing ones with a None source) so
    the omission policy is applied in one place, at command build time.

    Args:
        values: Option name -> raw value or late-bound value source

    Returns:
        ParameterSpec in FastTransfer option order

    Raises:
        ValueError: If values contains an unknown option name
    """
    unknown = sorted(set(values) - set(OPTIONS_BY_NAME))
    if unknown:
        raise ValueError(f"Unknown FastTransfer option(s): {', '.join(unknown)}")

    return ParameterSpec(
        ParameterEntry(opt.flag, opt.kind, values.get(opt.name))
        for opt in FASTTRANSFER_OPTIONS
    )
