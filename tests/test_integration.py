"""
End-to-end tests: migration files on disk, a SQLite ledger built from
configuration, and the command line front end.
"""

import io
import textwrap

import pytest
from rich.console import Console
from sqlalchemy import inspect

from modmigrate.cli import MigrationCLI
from modmigrate.config.settings import ConfigManager
from modmigrate.exceptions import MigrationRunError
from modmigrate.factory import MigratorFactory, create_migrator

USERS = '2020_01_01_000000_create_users_table'
POSTS = '2020_01_02_000000_create_posts_table'

USERS_SOURCE = '''
from modmigrate import Migration


class CreateUsersTable(Migration):
    description = "Create users table"
    
    def up(self):
        self.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, name VARCHAR(100))")
    
    def down(self):
        self.execute("DROP TABLE users")
'''

POSTS_SOURCE = '''
from modmigrate import Migration


class CreatePostsTable(Migration):
    def up(self):
        self.execute("CREATE TABLE posts (id INTEGER PRIMARY KEY, title VARCHAR(200))")
        if not self.has_column('posts', 'title'):
            raise RuntimeError("posts.title missing")
    
    def down(self):
        self.execute("DROP TABLE posts")
'''


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for env_var in ConfigManager.ENV_MAPPINGS.values():
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def module_path(tmp_path):
    """Module root with two migration files."""
    root = tmp_path / 'modules' / 'Blog'
    migrations = root / 'Database' / 'Migrations'
    migrations.mkdir(parents=True)
    (migrations / f'{USERS}.py').write_text(USERS_SOURCE)
    (migrations / f'{POSTS}.py').write_text(POSTS_SOURCE)
    return root


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'blog.db'}"


@pytest.fixture
def config(module_path, db_url):
    return ConfigManager(overrides={
        'module': {'name': 'Blog', 'path': str(module_path)},
        'database': {'url': db_url},
    })


@pytest.fixture
def engine(config):
    engine = MigratorFactory.create_engine(config)
    yield engine
    engine.dispose()


def table_names(engine):
    return set(inspect(engine).get_table_names())


class TestMigrationFiles:
    """Migrator wired from configuration over real files."""
    
    def test_migrate_creates_tables(self, config, engine):
        migrator = create_migrator(config, engine=engine)
        
        assert migrator.migrate() == [POSTS, USERS]
        assert {'users', 'posts', 'migrations'} <= table_names(engine)
        assert migrator.ran() == {USERS, POSTS}
        assert migrator.migrate() == []
    
    def test_package_files_are_not_migrations(self, config, engine, module_path):
        migrations = module_path / 'Database' / 'Migrations'
        (migrations / '__init__.py').write_text('')
        (migrations / 'helpers_util.py').write_text('TABLES = ["users", "posts"]\n')
        migrator = create_migrator(config, engine=engine)

        assert migrator.list_units() == [USERS, POSTS]
        assert migrator.migrate() == [POSTS, USERS]
        assert migrator.validate() == []

    def test_rollback_and_reset(self, config, engine):
        migrator = create_migrator(config, engine=engine)
        migrator.migrate()
        
        assert migrator.rollback() == [USERS]
        assert 'users' not in table_names(engine)
        assert 'posts' in table_names(engine)
        
        assert migrator.reset() == [POSTS]
        assert not {'users', 'posts'} & table_names(engine)
        assert migrator.ran() == set()
    
    def test_state_survives_new_migrator(self, config, engine):
        create_migrator(config, engine=engine).migrate()
        
        fresh = create_migrator(config, engine=engine)
        assert fresh.pending() == []
        assert fresh.last_batch() == 2
        assert fresh.status()['is_up_to_date'] is True
    
    def test_new_file_is_picked_up(self, config, engine, module_path):
        migrator = create_migrator(config, engine=engine)
        migrator.migrate()
        
        tags = '2020_01_03_000000_create_tags_table'
        (module_path / 'Database' / 'Migrations' / f'{tags}.py').write_text(textwrap.dedent('''
            from modmigrate import Migration


            class CreateTagsTable(Migration):
                def up(self):
                    self.execute("CREATE TABLE tags (id INTEGER PRIMARY KEY)")
        '''))
        
        assert migrator.pending() == [tags]
        assert migrator.migrate() == [tags]
        assert 'tags' in table_names(engine)
        
        with pytest.raises(MigrationRunError, match='does not support rollback') as exc_info:
            migrator.rollback()
        assert exc_info.value.processed == []
        assert tags in migrator.ran()
    
    def test_failing_sql_reports_progress(self, config, engine, module_path):
        broken = '2020_01_03_000000_alter_missing_table'
        (module_path / 'Database' / 'Migrations' / f'{broken}.py').write_text(textwrap.dedent('''
            from modmigrate import Migration


            class AlterMissingTable(Migration):
                def up(self):
                    self.execute("ALTER TABLE nowhere ADD COLUMN x INTEGER")
        '''))
        migrator = create_migrator(config, engine=engine)
        
        with pytest.raises(MigrationRunError) as exc_info:
            migrator.migrate()
        
        assert exc_info.value.migration == broken
        assert exc_info.value.processed == []
        assert migrator.ran() == set()
    
    def test_custom_table_and_policy(self, module_path, db_url):
        config = ConfigManager(overrides={
            'module': {'name': 'Blog', 'path': str(module_path)},
            'database': {'url': db_url, 'table': 'blog_migrations'},
            'migrations': {'batch_policy': 'one-batch-per-call'},
        })
        engine = MigratorFactory.create_engine(config)
        try:
            migrator = create_migrator(config, engine=engine)
            migrator.migrate()
            
            assert 'blog_migrations' in table_names(engine)
            assert migrator.last_batch() == 1
            assert migrator.rollback() == [USERS, POSTS]
        finally:
            engine.dispose()


class TestCommandLine:
    """CLI commands against real files."""
    
    @pytest.fixture
    def output(self):
        return io.StringIO()
    
    @pytest.fixture
    def run(self, output, module_path, db_url):
        def run(*argv):
            cli = MigrationCLI(console=Console(file=output, width=200))
            return cli.run([
                '--module-name', 'Blog',
                '--module-path', str(module_path),
                '--database-url', db_url,
                *argv,
            ])
        return run
    
    def test_migrate_and_status(self, run, output):
        assert run('migrate') == 0
        assert f"Migrated: {POSTS}" in output.getvalue()
        
        assert run('status') == 0
        text = output.getvalue()
        assert 'Applied: 2' in text
        assert 'Pending: 0' in text
    
    def test_nothing_to_do(self, run, output):
        assert run('rollback') == 0
        assert 'Nothing to rollback' in output.getvalue()
    
    def test_rollback_reset_refresh(self, run, output):
        run('migrate')
        assert run('rollback') == 0
        assert f"Rolled back: {USERS}" in output.getvalue()
        assert run('refresh') == 0
        assert run('reset') == 0
    
    def test_make(self, run, output, module_path):
        assert run('make', 'create_comments_table') == 0
        
        created = list((module_path / 'Database' / 'Migrations').glob('*_create_comments_table.py'))
        assert len(created) == 1
        assert 'Created migration' in output.getvalue()
        
        assert run('make', 'create_comments_table') == 1
        assert 'already exists' in output.getvalue()
    
    def test_validate_reports_missing_file(self, run, output, module_path):
        assert run('migrate') == 0
        assert run('validate') == 0
        
        (module_path / 'Database' / 'Migrations' / f'{USERS}.py').unlink()
        
        assert run('validate') == 1
        assert 'missing_file' in output.getvalue()
    
    def test_failure_exit_code(self, run, output, module_path):
        (module_path / 'Database' / 'Migrations' / '2020_01_03_000000_orphan_file.py').write_text('X = 1\n')
        
        assert run('migrate') == 1
        assert 'OrphanFile' in output.getvalue()
    
    def test_missing_config_file(self, run, output, tmp_path):
        assert run('--config', str(tmp_path / 'missing.yaml'), 'status') == 1
        assert 'Configuration error' in output.getvalue()
    
    def test_database_path_option(self, output, module_path, tmp_path):
        database = tmp_path / 'data' / 'ledger.db'
        database.parent.mkdir()
        cli = MigrationCLI(console=Console(file=output, width=200))

        assert cli.run(['--module-path', str(module_path), '--database', str(database), 'migrate']) == 0
        assert database.exists()
        assert f"Migrated: {USERS}" in output.getvalue()

    def test_malformed_database_url(self, output, module_path):
        cli = MigrationCLI(console=Console(file=output, width=200))

        assert cli.run(['--module-path', str(module_path), '--database-url', 'not a url', 'status']) == 1
        assert 'Configuration error' in output.getvalue()

    def test_no_command_prints_help(self, capsys):
        assert MigrationCLI(console=Console(file=io.StringIO())).run([]) == 0
        assert 'usage' in capsys.readouterr().out


class TestDuckDBLedger:
    """Same run against a DuckDB ledger when duckdb-engine is installed."""
    
    def test_migrate_and_rollback(self, module_path, tmp_path):
        pytest.importorskip('duckdb_engine')
        config = ConfigManager(overrides={
            'module': {'name': 'Blog', 'path': str(module_path)},
            'database': {'type': 'duckdb', 'database': str(tmp_path / 'blog.duckdb')},
        })
        engine = MigratorFactory.create_engine(config)
        try:
            migrator = create_migrator(config, engine=engine)
            
            assert migrator.migrate() == [POSTS, USERS]
            assert migrator.find(USERS)[0].batch == 2
            assert migrator.rollback() == [USERS]
            assert migrator.ran() == {POSTS}
        finally:
            engine.dispose()
