"""
Tests for Airflow Connection Mapping

These tests validate how Airflow connection attributes map to FastTransfer
source/target options and how explicit values override them.
"""

import pytest
from unittest.mock import Mock, patch
from fasttransfer.connections import connection_options, merge_connection_options


def make_connection(host='localhost', port=11433, schema='tpch10', login='FastTransfer_Login',
                    password='FastPassword', extra=None):
    conn = Mock()
    conn.host = host
    conn.port = port
    conn.schema = schema
    conn.login = login
    conn.password = password
    conn.extra_dejson = extra or {}
    return conn


class TestConnectionOptions:
    """Test connection -> options mapping."""

    def test_sql_auth_connection(self):
        with patch('fasttransfer.connections.BaseHook.get_connection') as mock_get_conn:
            mock_get_conn.return_value = make_connection()

            options = connection_options('mssql_source', 'source')

            mock_get_conn.assert_called_once_with('mssql_source')
            assert options == {
                'source_server': 'localhost,11433',
                'source_user': 'FastTransfer_Login',
                'source_password': 'FastPassword',
                'source_database': 'tpch10',
            }

    def test_no_port_uses_host_only(self):
        with patch('fasttransfer.connections.BaseHook.get_connection') as mock_get_conn:
            mock_get_conn.return_value = make_connection(host='db.example.com', port=None)

            options = connection_options('pg_target', 'target')

            assert options['target_server'] == 'db.example.com'

    def test_missing_attributes_left_out(self):
        with patch('fasttransfer.connections.BaseHook.get_connection') as mock_get_conn:
            mock_get_conn.return_value = make_connection(login=None, password=None, schema=None)

            options = connection_options('c', 'source')

            assert set(options) == {'source_server'}

    def test_extras(self):
        with patch('fasttransfer.connections.BaseHook.get_connection') as mock_get_conn:
            mock_get_conn.return_value = make_connection(
                login=None, password=None,
                extra={'connection_type': 'mssql', 'trusted': 'true', 'connect_string': 'Server=x'},
            )

            options = connection_options('c', 'target')

            assert options['target_connection_type'] == 'mssql'
            assert options['target_trusted'] is True
            assert options['target_connect_string'] == 'Server=x'

    def test_trusted_false_extra(self):
        with patch('fasttransfer.connections.BaseHook.get_connection') as mock_get_conn:
            mock_get_conn.return_value = make_connection(extra={'trusted': False})
            assert connection_options('c', 'source')['source_trusted'] is False

    def test_invalid_prefix(self):
        with pytest.raises(ValueError, match="prefix"):
            connection_options('c', 'middle')


class TestMergeConnectionOptions:
    """Test layering explicit values over connection values."""

    def test_no_connections_returns_explicit(self):
        explicit = {'source_server': 'a', 'degree': 4}
        assert merge_connection_options(explicit) == explicit

    def test_explicit_wins(self):
        with patch('fasttransfer.connections.BaseHook.get_connection') as mock_get_conn:
            mock_get_conn.return_value = make_connection()

            merged = merge_connection_options(
                {'source_server': 'override,1', 'source_user': None, 'source_table': 'orders'},
                source_conn_id='mssql_source',
            )

            assert merged['source_server'] == 'override,1'
            assert merged['source_user'] == 'FastTransfer_Login'
            assert merged['source_table'] == 'orders'

    def test_empty_explicit_does_not_clear_connection_value(self):
        with patch('fasttransfer.connections.BaseHook.get_connection') as mock_get_conn:
            mock_get_conn.return_value = make_connection()

            merged = merge_connection_options({'target_password': ''}, target_conn_id='t')

            assert merged['target_password'] == 'FastPassword'

    def test_both_connections(self):
        with patch('fasttransfer.connections.BaseHook.get_connection') as mock_get_conn:
            mock_get_conn.side_effect = [
                make_connection(host='src'),
                make_connection(host='tgt', port=None),
            ]

            merged = merge_connection_options({}, source_conn_id='s', target_conn_id='t')

            assert merged['source_server'] == 'src,11433'
            assert merged['target_server'] == 'tgt'

    def test_input_not_modified(self):
        explicit = {'source_server': None}
        merge_connection_options(explicit)
        assert explicit == {'source_server': None}
