"""Unit tests for ledger engine construction."""

import pytest
from sqlalchemy import text

from modmigrate.core.engine import EngineConfig


class TestEngineConfig:
    
    def test_sqlite_url(self):
        assert EngineConfig.build_url('sqlite', {'database': 'data/app.db'}) == 'sqlite:///data/app.db'
    
    def test_sqlite_defaults_to_memory(self):
        assert EngineConfig.build_url('sqlite', {}) == 'sqlite:///:memory:'
    
    def test_duckdb_url(self):
        assert EngineConfig.build_url('duckdb', {'database': 'ledger.duckdb'}) == 'duckdb:///ledger.duckdb'
    
    def test_postgresql_url(self):
        url = EngineConfig.build_url('postgresql', {
            'user': 'app', 'password': 'secret', 'host': 'db', 'port': 5433, 'database': 'modules'
        })
        assert url == 'postgresql+psycopg2://app:secret@db:5433/modules'
    
    def test_explicit_url_wins(self):
        assert EngineConfig.build_url('postgresql', {
            'url': 'sqlite:///other.db', 'database': 'ignored'
        }) == 'sqlite:///other.db'
    
    def test_unsupported_type(self):
        with pytest.raises(ValueError, match='Unsupported database type'):
            EngineConfig.build_url('oracle', {})
    
    def test_get_engine_sqlite(self, tmp_path):
        engine = EngineConfig.get_engine('sqlite', {
            'database': str(tmp_path / 'ledger.db'),
            'engine_args': {'echo': False},
        })
        try:
            with engine.connect() as conn:
                assert conn.execute(text('SELECT 1')).scalar() == 1
        finally:
            engine.dispose()
        assert (tmp_path / 'ledger.db').exists()
