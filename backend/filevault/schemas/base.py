"""Base schema classes with camelCase alias generation.

Request and response bodies inherit from these instead of BaseModel.
Python code stays snake_case; JSON on the wire is camelCase.
"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request bodies and plain responses. Accepts and outputs camelCase."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class CamelORMModel(BaseModel):
    """Responses built from service dataclasses or ORM rows."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }
