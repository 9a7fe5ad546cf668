"""
Shared schema base.

Python code uses snake_case; the frontend speaks camelCase JSON. Requests are
accepted in either form and responses are rendered in camelCase.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
