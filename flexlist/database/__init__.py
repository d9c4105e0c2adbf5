"""
Durable Catalog Backend
------------------------

SQLAlchemy/SQLite implementation of the catalog storage interface.

- manager: CatalogDB, one transaction per operation
- managers: session-scoped entity managers
- models: ORM models and association tables
- decorators: logging and error translation for database code

Usage:
    from flexlist.database import CatalogDB
"""
from .manager import CatalogDB

__all__ = ["CatalogDB"]
