"""SQLite schema management (code-first, assembled from feature modules)."""

import logging

from src.core import db_client
from src.core.module_registry import get_all_indexes, get_all_table_schemas, get_module, register_module


logger = logging.getLogger(__name__)


def register_default_modules() -> None:
    """Register the built-in feature modules (idempotent).

    Order matters: tables are created in registration order, and later modules
    reference the users and families tables.
    """
    from src.modules.accounts import AccountsModule
    from src.modules.proposals import ProposalsModule
    from src.modules.side_quests import SideQuestsModule
    from src.modules.tasks import TasksModule

    for module in (AccountsModule(), TasksModule(), ProposalsModule(), SideQuestsModule()):
        if get_module(module.name) is None:
            register_module(module)


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist yet."""
    register_default_modules()

    conn = await db_client.get_connection(db_path=db_path)
    for table_name, ddl in get_all_table_schemas().items():
        await conn.execute(ddl)
        logger.debug("Ensured table", extra={"table": table_name})

    for index_ddl in get_all_indexes():
        await conn.execute(index_ddl)

    await conn.commit()
    logger.info("Database schema initialized", extra={"db_path": str(db_client.get_db_path(db_path))})
