"""
Resolution of migration identifiers to executable units.

An identifier such as 2020_01_01_000000_create_users_table names its
implementation by the part after the four timestamp segments, converted to
StudlyCase: CreateUsersTable. Implementations are looked up in an explicit
registry of factories rather than by class name at runtime.
"""

import inspect
import logging
import re
from functools import partial
from types import ModuleType
from typing import Any, Callable, Dict, List, Optional

from .exceptions import MigrationError, ResolutionError
from .migration import Migration

logger = logging.getLogger(__name__)

# Number of leading underscore-delimited segments forming the timestamp
TIMESTAMP_SEGMENTS = 4


def studly_case(value: str) -> str:
    """
    Convert a snake/kebab-case string to StudlyCase.
    
    Only the first letter of each word is upper-cased; the rest of the word
    is kept as is, so 'add_HTML_column' becomes 'AddHTMLColumn'.
    """
    words = re.split(r'[-_\s]+', value)
    return ''.join(word[:1].upper() + word[1:] for word in words if word)


def derive_name(migration: str) -> str:
    """
    Implementation name for a migration identifier.
    
    Args:
        migration: Identifier like '2020_01_01_000000_create_users_table'
        
    Returns:
        Derived name like 'CreateUsersTable' (empty if nothing follows the timestamp)
    """
    remainder = '_'.join(migration.split('_')[TIMESTAMP_SEGMENTS:])
    return studly_case(remainder)


class MigrationRegistry:
    """
    Registry mapping implementation names to unit factories.
    
    A factory is any zero-argument callable returning an object with
    up() and down(). Migration subclasses loaded from files are
    registered with register_module().
    """
    
    def __init__(self):
        self._factories: Dict[str, Callable[[], Any]] = {}
        self._origins: Dict[str, Any] = {}
    
    def register(self, name: str, factory: Callable[[], Any], origin: Any = None) -> None:
        """
        Register a factory under a name.
        
        Args:
            name: Implementation name (e.g. 'CreateUsersTable')
            factory: Zero-argument callable building the unit
            origin: What the factory was built from, used to detect conflicts
            
        Raises:
            MigrationError: If the name is already taken by something else
        """
        if not name:
            raise MigrationError("Migration implementation name cannot be empty")
        origin = origin if origin is not None else factory
        
        existing = self._origins.get(name)
        if existing is not None and not self._same_origin(existing, origin):
            raise MigrationError(
                f"Duplicate migration implementation '{name}': "
                f"{self._describe(existing)} and {self._describe(origin)}"
            )
        
        self._factories[name] = factory
        self._origins[name] = origin
    
    @staticmethod
    def _same_origin(a: Any, b: Any) -> bool:
        if a is b:
            return True
        # A module re-executed in a fresh namespace yields a new class object
        return (
            inspect.isclass(a) and inspect.isclass(b)
            and a.__module__ == b.__module__ and a.__qualname__ == b.__qualname__
        )
    
    @staticmethod
    def _describe(origin: Any) -> str:
        return getattr(origin, '__qualname__', repr(origin))
    
    def register_class(self, cls):
        """
        Register a Migration subclass under its class name.
        
        Usable as a decorator.
        """
        self.register(cls.__name__, cls, origin=cls)
        return cls
    
    def register_module(self, module: ModuleType, **kwargs) -> List[str]:
        """
        Register every concrete Migration subclass defined in a module.
        
        Args:
            module: Loaded migration module
            **kwargs: Constructor arguments bound into each factory (e.g. engine)
            
        Returns:
            Names registered
        """
        names = []
        for obj in vars(module).values():
            if not (inspect.isclass(obj) and issubclass(obj, Migration)):
                continue
            if obj.__module__ != module.__name__ or inspect.isabstract(obj):
                continue
            factory = partial(obj, **kwargs) if kwargs else obj
            self.register(obj.__name__, factory, origin=obj)
            names.append(obj.__name__)
        return names
    
    def get(self, name: str) -> Optional[Callable[[], Any]]:
        return self._factories.get(name)
    
    def names(self) -> List[str]:
        return sorted(self._factories)
    
    def __contains__(self, name: str) -> bool:
        return name in self._factories
    
    def __len__(self) -> int:
        return len(self._factories)


class Resolver:
    """Maps migration identifiers to ready-to-use unit objects."""
    
    def __init__(self, registry: MigrationRegistry):
        self.registry = registry
    
    def resolve(self, migration: str) -> Any:
        """
        Build the unit for a migration identifier.
        
        Args:
            migration: Migration identifier
            
        Returns:
            New unit object exposing up() and down()
            
        Raises:
            ResolutionError: If no implementation is registered for the derived name
        """
        name = derive_name(migration)
        factory = self.registry.get(name)
        if factory is None:
            logger.error(f"Cannot resolve migration {migration}: no implementation named '{name}'")
            raise ResolutionError(migration, name)
        return factory()
