"""
Runtime capabilities of the connected database schema.

Some installations run against an older schema where the status history
table has no ``motivo`` column, or where the professional-to-user link
column is called ``user_id_int``.  Both facts are probed through Django's
introspection API the first time they are needed and cached per
database alias for the life of the process.  Tests that alter the schema
call :func:`reset`.
"""
from __future__ import annotations

import threading
from typing import Dict, Optional, Set

import structlog
from django.db import DEFAULT_DB_ALIAS, connections

from casework.models import Professional, StatusHistoryRecord

log = structlog.get_logger(__name__)

LINK_COLUMNS = ('user_id', 'user_id_int')

_lock = threading.Lock()
_columns: Dict[tuple, Set[str]] = {}


def reset() -> None:
    with _lock:
        _columns.clear()


def table_columns(table: str, using: Optional[str] = None) -> Set[str]:
    alias = using or DEFAULT_DB_ALIAS
    key = (alias, table)
    cached = _columns.get(key)
    if cached is not None:
        return cached
    with _lock:
        cached = _columns.get(key)
        if cached is None:
            connection = connections[alias]
            with connection.cursor() as cursor:
                description = connection.introspection.get_table_description(cursor, table)
            cached = {col.name for col in description}
            _columns[key] = cached
            log.debug('schema.probed', alias=alias, table=table, columns=sorted(cached))
    return cached


def has_reason_column(using: Optional[str] = None) -> bool:
    return 'motivo' in table_columns(StatusHistoryRecord._meta.db_table, using)


def link_column_name(using: Optional[str] = None) -> str:
    """Column of ``professionals`` holding the linked user id."""
    columns = table_columns(Professional._meta.db_table, using)
    for name in LINK_COLUMNS:
        if name in columns:
            return name
    raise LookupError(f'no user link column on {Professional._meta.db_table}')
