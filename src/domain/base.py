"""Shared base model for domain DTOs."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DomainModel(BaseModel):
    """Base for records exchanged with the web client.

    Python code uses snake_case attributes; JSON uses camelCase aliases.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
