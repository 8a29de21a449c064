"""
Shared schema base - the dashboard front end speaks camelCase JSON.

Fields are declared in snake_case and exposed as camelCase aliases.
populate_by_name=True lets Python code (and tests) build models with either.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """BaseModel whose JSON field names are camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
