"""
Database engine configuration for the ledger store
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


class EngineConfig:
    """Builds SQLAlchemy engines for the supported ledger backends"""
    
    SUPPORTED = ('sqlite', 'duckdb', 'postgresql')
    
    @staticmethod
    def build_url(db_type: str, connection_params: Dict[str, Any]) -> str:
        """
        Build a SQLAlchemy connection URL
        
        Args:
            db_type: Database type ('sqlite', 'duckdb', 'postgresql')
            connection_params: Database connection parameters
            
        Returns:
            Connection URL string
        """
        if connection_params.get('url'):
            return connection_params['url']
        
        if db_type == 'duckdb':
            # Requires duckdb-engine
            database = connection_params.get('database') or ':memory:'
            return f"duckdb:///{database}"
        elif db_type == 'sqlite':
            database = connection_params.get('database') or ':memory:'
            return f"sqlite:///{database}"
        elif db_type == 'postgresql':
            user = connection_params.get('user', 'postgres')
            password = connection_params.get('password', '')
            host = connection_params.get('host', 'localhost')
            port = connection_params.get('port', 5432)
            database = connection_params.get('database', 'postgres')
            return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{database}"
        else:
            raise ValueError(f"Unsupported database type: {db_type}")
    
    @staticmethod
    def get_engine(db_type: str, connection_params: Optional[Dict[str, Any]] = None) -> Engine:
        """
        Create SQLAlchemy engine based on database type and parameters
        
        Args:
            db_type: Database type ('sqlite', 'duckdb', 'postgresql')
            connection_params: Database connection parameters; a 'url' key
                takes precedence over the per-type fields
            
        Returns:
            SQLAlchemy Engine instance
        """
        connection_params = connection_params or {}
        conn_string = EngineConfig.build_url(db_type, connection_params)
        
        engine_args = dict(connection_params.get('engine_args') or {})
        engine_args.setdefault('echo', False)
        if db_type == 'postgresql':
            engine_args.setdefault('pool_size', 5)
            engine_args.setdefault('pool_pre_ping', True)
        
        logger.info(f"Creating {db_type} engine: {conn_string}")
        return create_engine(conn_string, **engine_args)
