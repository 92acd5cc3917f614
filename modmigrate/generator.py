"""
Migration file generator.

Writes a new, timestamp-prefixed migration file containing an empty
Migration subclass named after the migration.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .exceptions import MigrationError
from .resolver import derive_name

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = '%Y_%m_%d_%H%M%S'

MIGRATION_TEMPLATE = '''"""
Migration {migration}: {title}
Created at: {created_at}
"""

from modmigrate import Migration


class {class_name}(Migration):
    description = {title!r}
    
    def up(self):
        pass
    
    def down(self):
        pass
'''


def sanitize_name(name: str) -> str:
    """
    Normalise a migration name to snake_case.
    
    Args:
        name: Free-form name, e.g. 'Create users table'
        
    Returns:
        Sanitized name, e.g. 'create_users_table'
    """
    # Split CamelCase words before lower-casing
    sanitized = re.sub(r'(?<=[a-z0-9])(?=[A-Z])', '_', name.strip())
    sanitized = re.sub(r'[^a-zA-Z0-9_]', '_', sanitized.lower())
    sanitized = re.sub(r'_+', '_', sanitized).strip('_')
    return sanitized


def create_migration_file(directory: Union[str, Path], name: str,
                          now: Optional[datetime] = None) -> Path:
    """
    Create a new migration file.
    
    Args:
        directory: Migration directory (created if missing)
        name: Migration name (will be sanitized)
        now: Timestamp to use (default: current time)
        
    Returns:
        Path to created migration file
        
    Raises:
        MigrationError: If the name is empty or a migration with the same
            name already exists in the directory
    """
    sanitized = sanitize_name(name)
    if not sanitized or not re.match(r'^[a-z_]', sanitized):
        raise MigrationError(f"Invalid migration name: {name!r}")
    
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    
    existing = sorted(directory.glob(f'*_{sanitized}.py'))
    for path in existing:
        if path.stem.split('_', 4)[-1] == sanitized:
            raise MigrationError(f"A migration named {sanitized} already exists: {path.name}")
    
    now = now or datetime.now()
    migration = f"{now.strftime(TIMESTAMP_FORMAT)}_{sanitized}"
    file_path = directory / f"{migration}.py"
    
    content = MIGRATION_TEMPLATE.format(
        migration=migration,
        title=name.strip(),
        created_at=now.isoformat(),
        class_name=derive_name(migration),
    )
    
    with open(file_path, 'x', encoding='utf-8') as f:
        f.write(content)
    
    logger.info(f"Created migration file: {file_path.name}")
    return file_path
