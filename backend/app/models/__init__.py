"""ORM models package.

Importing this module ensures every model is registered with the
SQLAlchemy ``Base.metadata`` so that Alembic autogenerate and
``init_db`` can detect all tables.
"""

from app.models.commit import Commit
from app.models.repository import Repository

__all__ = [
    "Commit",
    "Repository",
]
