"""
Tests for FastTransfer Option Table

These tests validate flag names and order, option kinds and value
validation.
"""

import pytest
from fasttransfer.options import (
    FASTTRANSFER_OPTIONS,
    OPTION_NAMES,
    OPTIONS_BY_NAME,
    build_parameter_spec,
    validate_option_values,
)
from fasttransfer.parameters import REDACTION_MARKER, ParameterKind, build_command

EXE = "/tmp/fasttransfer-x"

EXAMPLE_VALUES = {
    "source_connection_type": "mssql",
    "source_server": "localhost,11433",
    "source_user": "FastTransfer_Login",
    "source_password": "FastPassword",
    "source_database": "tpch10",
    "source_schema": "dbo",
    "source_table": "orders",
    "target_connection_type": "msbulk",
    "target_server": "localhost,31433",
    "target_user": "FastTransfer_Login",
    "target_password": "FastPassword",
    "target_database": "tpch10",
    "target_schema": "dbo",
    "target_table": "orders2",
    "degree": 12,
    "method": "Ntile",
    "distribute_key_column": "o_orderkey",
    "load_mode": "Truncate",
    "map_method": "Position",
    "batch_size": 1048576,
    "use_work_tables": True,
    "license": "YOUR_LICENSE_KEY",
}


class TestOptionTable:
    """Test the declared option table."""

    def test_option_count_and_uniqueness(self):
        assert len(FASTTRANSFER_OPTIONS) == 33
        assert len({o.flag for o in FASTTRANSFER_OPTIONS}) == 33
        assert len(OPTIONS_BY_NAME) == 33

    def test_flags_are_lowercase_long_options(self):
        for opt in FASTTRANSFER_OPTIONS:
            assert opt.flag.startswith("--")
            assert opt.flag == opt.flag.lower()
            assert opt.flag[2:] == opt.name.replace("_", "")

    def test_secret_options(self):
        secrets = {o.name for o in FASTTRANSFER_OPTIONS if o.kind is ParameterKind.SECRET}
        assert secrets == {"source_password", "target_password", "license"}

    def test_flag_options(self):
        flags = {o.name for o in FASTTRANSFER_OPTIONS if o.kind is ParameterKind.FLAG}
        assert flags == {"source_trusted", "target_trusted", "use_work_tables"}

    def test_first_and_last(self):
        assert OPTION_NAMES[0] == "source_connection_type"
        assert OPTION_NAMES[-1] == "license"


class TestBuildParameterSpec:
    """Test option table -> ParameterSpec."""

    def test_includes_every_option_in_order(self):
        spec = build_parameter_spec({})
        assert spec.flags() == [o.flag for o in FASTTRANSFER_OPTIONS]

    def test_unknown_option_rejected(self):
        with pytest.raises(ValueError, match="sourceserver"):
            build_parameter_spec({"sourceserver": "x"})

    def test_example_transfer_command(self):
        command = build_command(EXE, build_parameter_spec(EXAMPLE_VALUES))

        assert command.argv == (
            EXE,
            "--sourceconnectiontype", "mssql",
            "--sourceserver", "localhost,11433",
            "--sourceuser", "FastTransfer_Login",
            "--sourcepassword", "FastPassword",
            "--sourcedatabase", "tpch10",
            "--sourceschema", "dbo",
            "--sourcetable", "orders",
            "--targetconnectiontype", "msbulk",
            "--targetserver", "localhost,31433",
            "--targetuser", "FastTransfer_Login",
            "--targetpassword", "FastPassword",
            "--targetdatabase", "tpch10",
            "--targetschema", "dbo",
            "--targettable", "orders2",
            "--degree", "12",
            "--method", "Ntile",
            "--distributekeycolumn", "o_orderkey",
            "--loadmode", "Truncate",
            "--batchsize", "1048576",
            "--useworktables",
            "--mapmethod", "Position",
            "--license", "YOUR_LICENSE_KEY",
        )

    def test_example_transfer_log_line(self):
        display = build_command(EXE, build_parameter_spec(EXAMPLE_VALUES)).display()

        assert "FastPassword" not in display
        assert "YOUR_LICENSE_KEY" not in display
        assert display.count(REDACTION_MARKER) == 3
        assert f"--license {REDACTION_MARKER}" in display


class TestValidateOptionValues:
    """Test value validation."""

    def test_example_is_valid(self):
        validate_option_values(EXAMPLE_VALUES)

    def test_empty_is_valid(self):
        validate_option_values({})

    def test_unknown_option(self):
        with pytest.raises(ValueError, match="Unknown FastTransfer option"):
            validate_option_values({"parallelism": 4})

    def test_negative_degree(self):
        with pytest.raises(ValueError, match="degree"):
            validate_option_values({"degree": -1})

    def test_degree_zero_means_auto(self):
        validate_option_values({"degree": 0})

    def test_degree_from_rendered_string(self):
        validate_option_values({"degree": "8"})

    def test_non_numeric_batch_size(self):
        with pytest.raises(ValueError, match="batch_size"):
            validate_option_values({"batch_size": "lots"})

    def test_zero_batch_size(self):
        with pytest.raises(ValueError, match="batch_size"):
            validate_option_values({"batch_size": 0})

    def test_bool_is_not_an_integer(self):
        with pytest.raises(ValueError, match="degree"):
            validate_option_values({"degree": True})

    def test_invalid_load_mode(self):
        with pytest.raises(ValueError, match="load_mode"):
            validate_option_values({"load_mode": "Merge"})

    def test_invalid_map_method(self):
        with pytest.raises(ValueError, match="map_method"):
            validate_option_values({"map_method": "Ordinal"})

    def test_templates_are_not_validated(self):
        validate_option_values({
            "degree": "{{ params.degree }}",
            "load_mode": "{{ params.load_mode }}",
        })
