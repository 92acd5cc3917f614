"""
Application module model.

A module is the pluggable unit that owns a migration directory. Its
migrations live under an extra path relative to the module root.
"""

from pathlib import Path
from typing import Optional, Union
from pydantic import BaseModel, Field, field_validator


class ModuleInfo(BaseModel):
    """Pluggable application module owning a set of migrations."""
    
    name: str = Field(..., description="Module name")
    path: str = Field(..., description="Module root directory")
    
    @field_validator('name', 'path')
    @classmethod
    def validate_not_empty(cls, v):
        if not v or len(v.strip()) == 0:
            raise ValueError('Module name and path cannot be empty')
        return v.strip()
    
    def get_extra_path(self, relative: Optional[Union[str, Path]] = None) -> Path:
        """
        Resolve a path inside the module.
        
        Args:
            relative: Path relative to the module root. Absolute paths are
                returned unchanged.
                
        Returns:
            Resolved path
        """
        if relative is None:
            return Path(self.path)
        relative = Path(relative)
        if relative.is_absolute():
            return relative
        return Path(self.path) / relative
