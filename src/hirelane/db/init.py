from __future__ import annotations

from sqlalchemy import inspect

from hirelane.db.base import Base
from hirelane.db.session import engine
from hirelane.db import models  # noqa: F401


def init_database() -> dict[str, int]:
    existing = set(inspect(engine).get_table_names())
    Base.metadata.create_all(bind=engine)
    created = [name for name in Base.metadata.tables if name not in existing]
    return {"created_tables": len(created)}
