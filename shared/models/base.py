"""Base model shared by the wire models."""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Model serialized with camelCase keys, accepting either key style on input."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class FrozenWireModel(WireModel):
    """Immutable wire model."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True
