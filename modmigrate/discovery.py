"""
Migration discovery and file loading.

Discovery lists the migration identifiers present in a directory; the
loader executes a migration file at most once per process so its classes
can be registered.
"""

import hashlib
import importlib.util
import logging
import re
import sys
from pathlib import Path
from types import ModuleType
from typing import List, Optional, Union

from .exceptions import MigrationError

logger = logging.getLogger(__name__)

DEFAULT_PATTERN = '*_*.py'
DEFAULT_EXTENSION = '.py'
# Identifier: YYYY_MM_DD_HHMMSS_name
DEFAULT_NAME_REGEX = r'^\d{4}_\d{2}_\d{2}_\d{6}_\w+$'


class FilesystemLister:
    """Directory lister backed by pathlib."""
    
    def glob(self, directory: Union[str, Path], pattern: str) -> Optional[List[str]]:
        """
        List paths in a directory matching a glob pattern.
        
        Args:
            directory: Directory to scan
            pattern: Glob pattern (e.g. '*_*.py')
            
        Returns:
            Matching file paths, or None when the directory is missing or unreadable
        """
        directory = Path(directory)
        if not directory.is_dir():
            return None
        try:
            return [str(path) for path in directory.glob(pattern) if path.is_file()]
        except OSError as e:
            logger.warning(f"Cannot read migration directory {directory}: {e}")
            return None


class MigrationDiscovery:
    """
    Lists migration identifiers from a directory.
    
    Identifiers are file basenames without extension. Their timestamp
    prefix makes ascending lexicographic order the order in which the
    migrations were created.
    """
    
    def __init__(self, directory: Union[str, Path], lister=None,
                 pattern: str = DEFAULT_PATTERN, extension: str = DEFAULT_EXTENSION,
                 name_regex: str = DEFAULT_NAME_REGEX):
        """
        Args:
            directory: Migration directory
            lister: Object with glob(directory, pattern) (default: FilesystemLister)
            pattern: Glob pattern for migration files
            extension: File extension stripped from basenames
            name_regex: Identifiers not matching this are skipped (e.g. __init__)
        """
        self.directory = Path(directory)
        self.lister = lister or FilesystemLister()
        self.pattern = pattern
        self.extension = extension
        self.name_regex = re.compile(name_regex)
    
    def _strip(self, file_path: str) -> str:
        name = Path(file_path).name
        if self.extension and name.endswith(self.extension):
            name = name[:-len(self.extension)]
        return name
    
    def list_units(self) -> List[str]:
        """
        Discover migration identifiers.
        
        Returns:
            Identifiers sorted ascending; empty when the directory is missing
        """
        files = self.lister.glob(self.directory, self.pattern)
        if files is None:
            logger.debug(f"Migration directory not found: {self.directory}")
            return []
        
        names = {self._strip(f) for f in files}
        migrations = sorted(n for n in names if self.name_regex.match(n))
        skipped = names.difference(migrations)
        if skipped:
            logger.debug(f"Ignoring non-migration files in {self.directory}: {sorted(skipped)}")
        logger.debug(f"Discovered {len(migrations)} migrations in {self.directory}")
        return migrations
    
    def path_for(self, migration: str) -> Path:
        """File path of a migration identifier."""
        return self.directory / f"{migration}{self.extension}"


class ModuleLoader:
    """
    Loads migration files as Python modules.
    
    Loaded modules are kept in sys.modules under a name derived from the
    file path, so loading the same file again returns the existing module
    without re-running its top level.
    """
    
    @staticmethod
    def module_name_for(path: Union[str, Path]) -> str:
        path = Path(path).resolve()
        digest = hashlib.md5(str(path.parent).encode()).hexdigest()[:10]
        return f"_modmigrate_{digest}_{path.stem}"
    
    def load(self, path: Union[str, Path]) -> ModuleType:
        """
        Load a migration file.
        
        Args:
            path: Path to the migration file
            
        Returns:
            The loaded module
            
        Raises:
            MigrationError: If the file does not exist or cannot be imported
        """
        path = Path(path).resolve()
        module_name = self.module_name_for(path)
        
        module = sys.modules.get(module_name)
        if module is not None:
            return module
        
        if not path.is_file():
            raise MigrationError(f"Migration file not found: {path}")
        
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise MigrationError(f"Cannot load migration file: {path}")
        
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            del sys.modules[module_name]
            raise MigrationError(f"Failed to load migration file {path}: {e}") from e
        
        logger.debug(f"Loaded migration file {path.name}")
        return module
