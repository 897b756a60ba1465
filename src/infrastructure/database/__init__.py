# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the school PostgreSQL database.

Example:
    from src.infrastructure.database import (
        get_session,
        init_database,
        SQLAlchemyDataSource,
    )

    await init_database(settings)

    async with get_session() as session:
        source = SQLAlchemyDataSource(session)
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    get_session,
    get_sessionmaker,
    init_database,
)
from src.infrastructure.database.repository import SQLAlchemyDataSource

__all__ = [
    "DatabaseError",
    "check_database_connection",
    "close_database",
    "get_session",
    "get_sessionmaker",
    "init_database",
    "SQLAlchemyDataSource",
]
