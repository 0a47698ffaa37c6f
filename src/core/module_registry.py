"""Registry of the feature modules (accounts, tasks, proposals, side quests) that own tables."""

from typing import ClassVar

from src.core.module import Module


class _RegistryState:
    """Registered modules, keyed by name in registration order."""

    modules: ClassVar[dict[str, Module]] = {}


_registry = _RegistryState()


def register_module(module: Module) -> None:
    """Add a feature module; its tables are created after those of earlier modules.

    Raises:
        ValueError: If a module with the same name is already registered
    """
    if module.name in _registry.modules:
        msg = f"Module '{module.name}' is already registered"
        raise ValueError(msg)
    _registry.modules[module.name] = module


def get_module(name: str) -> Module | None:
    return _registry.modules.get(name)


def get_all_table_schemas() -> dict[str, str]:
    """CREATE TABLE statements of every module, keyed by table name.

    Raises:
        ValueError: If two modules declare the same table
    """
    all_schemas: dict[str, str] = {}
    for module in _registry.modules.values():
        for table_name, ddl in module.get_table_schemas().items():
            if table_name in all_schemas:
                msg = f"Duplicate table schema '{table_name}' from module '{module.name}'"
                raise ValueError(msg)
            all_schemas[table_name] = ddl
    return all_schemas


def get_all_indexes() -> list[str]:
    return [index for module in _registry.modules.values() for index in module.get_indexes()]
