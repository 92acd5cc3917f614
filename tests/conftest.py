"""
Shared fixtures for modmigrate tests.
"""

import logging

import pytest
from sqlalchemy import create_engine

from modmigrate.core.table import LedgerTable
from modmigrate.discovery import MigrationDiscovery
from modmigrate.migrator import Migrator
from modmigrate.repositories.ledger_repository import LedgerRepository
from modmigrate.resolver import MigrationRegistry, derive_name

USERS = '2020_01_01_000000_create_users_table'
POSTS = '2020_01_02_000000_create_posts_table'
TAGS = '2020_01_03_000000_create_tags_table'


class FakeLister:
    """Directory lister returning a fixed list of paths (None = directory missing)."""
    
    def __init__(self, files=None):
        self.files = files
        self.calls = []
    
    def glob(self, directory, pattern):
        self.calls.append((str(directory), pattern))
        if self.files is None:
            return None
        return list(self.files)


class RecordingUnit:
    """
    Migration unit that records up/down calls into a shared list.
    
    A unit fails when the shared failures dict maps its migration to the
    direction being run.
    """
    
    def __init__(self, migration, calls, failures=None):
        self.migration = migration
        self.calls = calls
        self.failures = failures if failures is not None else {}
    
    def up(self):
        if self.failures.get(self.migration) == 'up':
            raise RuntimeError(f"boom in {self.migration}")
        self.calls.append(('up', self.migration))
    
    def down(self):
        if self.failures.get(self.migration) == 'down':
            raise RuntimeError(f"boom in {self.migration}")
        self.calls.append(('down', self.migration))


@pytest.fixture(autouse=True)
def reset_modmigrate_logger():
    """Undo handler changes made by setup_logging so tests stay independent."""
    yield
    logger = logging.getLogger('modmigrate')
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def engine(tmp_path):
    """SQLite engine backed by a temporary file."""
    engine = create_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def ledger_table(engine):
    table = LedgerTable(engine, 'migrations')
    table.ensure_table()
    return table


@pytest.fixture
def ledger(ledger_table):
    return LedgerRepository(ledger_table, module_name='Blog')


@pytest.fixture
def calls():
    return []


@pytest.fixture
def failures():
    """Map of migration id to the direction ('up' or 'down') that should fail."""
    return {}


@pytest.fixture
def registry(calls, failures):
    registry = MigrationRegistry()
    for migration in (USERS, POSTS, TAGS):
        registry.register(
            derive_name(migration),
            lambda migration=migration: RecordingUnit(migration, calls, failures)
        )
    return registry


@pytest.fixture
def fake_lister():
    return FakeLister


@pytest.fixture
def make_migrator(ledger, registry):
    """Build a migrator over a fake directory listing."""
    def factory(migrations, batch_policy=None, lister=None):
        if lister is None:
            lister = FakeLister([f'/modules/Blog/Database/Migrations/{m}.py' for m in migrations])
        discovery = MigrationDiscovery('/modules/Blog/Database/Migrations', lister=lister)
        return Migrator(discovery, ledger, registry, batch_policy=batch_policy, module_name='Blog')
    return factory


@pytest.fixture
def migrator(make_migrator):
    # Listed out of order on purpose: discovery sorts
    return make_migrator([POSTS, USERS])
