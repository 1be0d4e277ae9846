"""
Airflow Connection Mapping

Fills source/target FastTransfer options from an Airflow connection so
credentials can live in the Airflow metastore or a secrets backend instead of
in DAG code.

Mapping (prefix is "source" or "target"):
- host/port      -> <prefix>_server   ("host,port" when a port is set)
- login          -> <prefix>_user
- password       -> <prefix>_password
- schema         -> <prefix>_database (Airflow stores the database in 'schema')
- extra.connection_type -> <prefix>_connection_type
- extra.connect_string  -> <prefix>_connect_string
- extra.trusted         -> <prefix>_trusted
"""

from typing import Any, Dict, Optional
from airflow.hooks.base import BaseHook
import logging

logger = logging.getLogger(__name__)

PREFIXES = ("source", "target")


def _extra_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')


def connection_options(conn_id: str, prefix: str) -> Dict[str, Any]:
    """
    Build FastTransfer option values from an Airflow connection.

    Args:
        conn_id: Airflow connection ID
        prefix: "source" or "target"

    Returns:
        Dict of option name -> value; attributes not set on the connection
        are left out

    Raises:
        ValueError: If prefix is not "source" or "target"
    """
    if prefix not in PREFIXES:
        raise ValueError(f"Invalid connection prefix '{prefix}': must be one of {', '.join(PREFIXES)}")

    conn = BaseHook.get_connection(conn_id)
    options: Dict[str, Any] = {}

    if conn.host:
        # SQL Server style "host,port"; FastTransfer accepts it for every engine
        options[f"{prefix}_server"] = f"{conn.host},{conn.port}" if conn.port else conn.host
    if conn.login:
        options[f"{prefix}_user"] = conn.login
    if conn.password:
        options[f"{prefix}_password"] = conn.password
    if conn.schema:
        options[f"{prefix}_database"] = conn.schema

    extra: Dict[str, Any] = conn.extra_dejson or {}
    if extra.get("connection_type"):
        options[f"{prefix}_connection_type"] = extra["connection_type"]
    if extra.get("connect_string"):
        options[f"{prefix}_connect_string"] = extra["connect_string"]
    if "trusted" in extra:
        options[f"{prefix}_trusted"] = _extra_flag(extra["trusted"])

    logger.info(f"Loaded {prefix} options from connection '{conn_id}': {sorted(options)}")
    return options


def merge_connection_options(
    explicit: Dict[str, Any],
    source_conn_id: Optional[str] = None,
    target_conn_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Layer explicit option values over connection-derived ones.

    An explicit value wins unless it is None or an empty string.

    Returns:
        New dict; the input is not modified
    """
    merged: Dict[str, Any] = {}
    if source_conn_id:
        merged.update(connection_options(source_conn_id, "source"))
    if target_conn_id:
        merged.update(connection_options(target_conn_id, "target"))

    for name, value in explicit.items():
        if value is None or value == "":
            merged.setdefault(name, value)
        else:
            merged[name] = value
    return merged
