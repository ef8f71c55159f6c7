"""Base models with camelCase serialization for API output."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every model that leaves the process; dumps camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class FrozenCamelModel(CamelModel):
    """Immutable variant, used for snapshots handed to callers."""

    model_config = ConfigDict(frozen=True)
