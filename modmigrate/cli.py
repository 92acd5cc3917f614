"""
Command line interface for modmigrate.

Usage:
    modmigrate migrate                  # Apply pending migrations
    modmigrate rollback                 # Reverse the last batch
    modmigrate reset                    # Reverse every applied migration
    modmigrate refresh                  # Reset, then migrate again
    modmigrate status                   # Show applied and pending migrations
    modmigrate validate                 # Check the ledger against the files
    modmigrate make create_users_table  # Create a new migration file
"""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from jsonschema import ValidationError
from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import ArgumentError

from . import __version__
from .config.logging_config import setup_logging
from .config.settings import BATCH_POLICIES, ConfigManager, load_config
from .exceptions import MigrationError, MigrationRunError
from .factory import create_migrator
from .generator import create_migration_file

logger = logging.getLogger(__name__)


class MigrationCLI:
    """Command line front end over the Migrator."""
    
    COMMANDS = {
        'migrate': "Apply all pending migrations",
        'rollback': "Reverse the last batch of migrations",
        'reset': "Reverse all applied migrations",
        'refresh': "Reset and re-run all migrations",
        'status': "Show the status of each migration",
        'validate': "Check the ledger against the migration directory",
        'make': "Create a new migration file",
    }
    
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
    
    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog='modmigrate',
            description="Versioned schema migrations for application modules",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=__doc__,
        )
        parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
        parser.add_argument('--config', '-c', metavar='FILE', help='YAML configuration file')
        parser.add_argument('--debug', action='store_true', help='Enable debug logging')
        
        overrides = parser.add_argument_group('Configuration overrides')
        overrides.add_argument('--module-name', metavar='NAME', help='Module name')
        overrides.add_argument('--module-path', metavar='DIR', help='Module root directory')
        overrides.add_argument('--migration-path', metavar='DIR',
                               help='Migration directory (relative to the module path)')
        overrides.add_argument('--database', metavar='PATH',
                               help='Ledger database (file path for sqlite and duckdb)')
        overrides.add_argument('--database-url', metavar='URL',
                               help='SQLAlchemy URL of the ledger store (wins over --database)')
        overrides.add_argument('--table', metavar='NAME', help='Ledger table name')
        overrides.add_argument('--batch-policy', choices=BATCH_POLICIES,
                               help='How batch numbers are assigned during migrate')
        
        subparsers = parser.add_subparsers(dest='command', metavar='command')
        for name, help_text in self.COMMANDS.items():
            sub = subparsers.add_parser(name, help=help_text, description=help_text)
            if name == 'make':
                sub.add_argument('name', help='Migration name, e.g. create_users_table')
            if name == 'status':
                sub.add_argument('--pending', action='store_true', help='Only list pending migrations')
        
        return parser
    
    def _overrides(self, args: argparse.Namespace) -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        
        def put(section: str, key: str, value: Any) -> None:
            if value is not None:
                overrides.setdefault(section, {})[key] = value
        
        put('module', 'name', args.module_name)
        put('module', 'path', args.module_path)
        put('paths', 'migration', args.migration_path)
        put('database', 'database', args.database)
        put('database', 'url', args.database_url)
        put('database', 'table', args.table)
        put('migrations', 'batch_policy', args.batch_policy)
        if args.debug:
            put('logging', 'level', 'DEBUG')
        return overrides
    
    def run(self, argv: List[str]) -> int:
        """Run the CLI with command line arguments."""
        parser = self.build_parser()
        args = parser.parse_args(argv)
        
        if not args.command:
            parser.print_help()
            return 0
        
        try:
            config = load_config(args.config, self._overrides(args))
        except (FileNotFoundError, ValueError, ValidationError) as e:
            message = e.message if isinstance(e, ValidationError) else str(e)
            self.console.print(f"[bold red]Configuration error:[/bold red] {message}")
            return 1
        
        setup_logging(config.get_config())
        
        try:
            handler = getattr(self, f'_cmd_{args.command}')
            return handler(config, args)
        except MigrationRunError as e:
            self._print_list(e.processed, "Completed before failure", 'yellow')
            self.console.print(f"[bold red]Error:[/bold red] {e}")
            return 1
        except MigrationError as e:
            self.console.print(f"[bold red]Error:[/bold red] {e}")
            return 1
        except (ArgumentError, ValueError) as e:
            # Raised while building the engine from configuration
            self.console.print(f"[bold red]Configuration error:[/bold red] {e}")
            return 1
    
    def _print_list(self, migrations: List[str], label: str, style: str) -> None:
        for migration in migrations:
            self.console.print(f"[{style}]{label}:[/{style}] {migration}")
    
    def _cmd_migrate(self, config: ConfigManager, args) -> int:
        migrated = create_migrator(config).migrate()
        if not migrated:
            self.console.print("[cyan]Nothing to migrate.[/cyan]")
        self._print_list(migrated, "Migrated", 'green')
        return 0
    
    def _cmd_rollback(self, config: ConfigManager, args) -> int:
        rolled_back = create_migrator(config).rollback()
        if not rolled_back:
            self.console.print("[cyan]Nothing to rollback.[/cyan]")
        self._print_list(rolled_back, "Rolled back", 'green')
        return 0
    
    def _cmd_reset(self, config: ConfigManager, args) -> int:
        reverted = create_migrator(config).reset()
        if not reverted:
            self.console.print("[cyan]Nothing to reset.[/cyan]")
        self._print_list(reverted, "Rolled back", 'green')
        return 0
    
    def _cmd_refresh(self, config: ConfigManager, args) -> int:
        result = create_migrator(config).refresh()
        self._print_list(result['reset'], "Rolled back", 'yellow')
        self._print_list(result['migrated'], "Migrated", 'green')
        return 0
    
    def _cmd_status(self, config: ConfigManager, args) -> int:
        status = create_migrator(config).status()
        
        table = Table(
            title=f"[bold blue]Migrations for {status['module']}[/bold blue]",
            show_header=True, header_style="bold magenta"
        )
        table.add_column("Ran?", width=5)
        table.add_column("Migration", style="bold yellow")
        table.add_column("Batch", justify="right")
        
        for state in status['migrations']:
            if args.pending and state['ran']:
                continue
            ran = "[green]Yes[/green]" if state['ran'] else "[red]No[/red]"
            batch = str(state['batch']) if state['batch'] is not None else ""
            table.add_row(ran, state['migration'], batch)
        
        self.console.print(table)
        self.console.print(
            f"Applied: {status['applied_migrations']}  "
            f"Pending: {status['pending_migrations']}  "
            f"Last batch: {status['last_batch']}"
        )
        for migration in status['orphaned']:
            self.console.print(f"[yellow]Ledger entry without file:[/yellow] {migration}")
        return 0
    
    def _cmd_validate(self, config: ConfigManager, args) -> int:
        issues = create_migrator(config).validate()
        if not issues:
            self.console.print("[green]Ledger matches migration directory.[/green]")
            return 0
        for issue in issues:
            self.console.print(f"[yellow]{issue['type']}:[/yellow] {issue['message']}")
        return 1
    
    def _cmd_make(self, config: ConfigManager, args) -> int:
        path = create_migration_file(config.migration_path, args.name)
        self.console.print(f"[green]Created migration:[/green] {path.name}")
        return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    cli = MigrationCLI()
    try:
        return cli.run(sys.argv[1:] if argv is None else argv)
    except KeyboardInterrupt:
        cli.console.print("\n\nInterrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
