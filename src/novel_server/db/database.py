"""Public DB import surface.

Callers outside the DB package import from here (``from novel_server.db
import database``) so repository modules can move without touching routes,
services or tests.
"""

from novel_server.db.connection import (  # noqa: F401
    connection_scope,
    get_connection,
    get_db_path,
    immediate_transaction,
)
from novel_server.db.schema import init_database  # noqa: F401
