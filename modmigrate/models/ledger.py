"""
Ledger data models.

This module defines Pydantic models for the migration ledger: a single
applied-migration row and the per-unit status reported by the migrator.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class LedgerEntry(BaseModel):
    """
    One applied migration as recorded in the ledger table.
    
    A migration is either unapplied (no entry) or has exactly one entry.
    Entries are created by migrate and deleted by rollback/reset; they
    are never updated in place.
    """
    
    id: Optional[int] = Field(None, description="Database ID (auto-generated)")
    migration: str = Field(..., description="Migration identifier (file basename)")
    batch: int = Field(..., ge=0, description="Batch number the migration was applied in")
    
    @field_validator('migration')
    @classmethod
    def validate_migration(cls, v):
        """Validate migration identifier."""
        if not v or len(v.strip()) == 0:
            raise ValueError('Migration identifier cannot be empty')
        return v.strip()
    
    def to_row(self) -> dict:
        """Row payload for insertion (without the generated id)."""
        return {'migration': self.migration, 'batch': self.batch}
    
    model_config = ConfigDict(json_schema_extra={
        "example": {
            "migration": "2020_01_01_000000_create_users_table",
            "batch": 1
        }
    })


class MigrationState(BaseModel):
    """Status of a single discovered migration unit."""
    
    migration: str = Field(..., description="Migration identifier")
    name: str = Field(..., description="Derived implementation name")
    ran: bool = Field(default=False, description="Whether the migration is in the ledger")
    batch: Optional[int] = Field(None, ge=0, description="Batch number when applied")
