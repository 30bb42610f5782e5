"""Reusable pydantic base models for configuration and node payloads."""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    A base model that reads and writes field names in camel case.

    For example, the field name `validator_network_address` in a Python model is
    represented as `validatorNetworkAddress` in YAML or JSON.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_default=True,
    )

    def copy(self: Self, **kwargs: Any) -> Self:
        """Create a copy of the model with the updated fields that are validated."""
        return self.__class__(**(self.model_dump(exclude_unset=True) | kwargs))


class StrictBaseModel(CamelModel):
    """A strict, immutable pydantic base model."""

    model_config = CamelModel.model_config | {
        "extra": "forbid",
        "frozen": True,
        "strict": True,
    }


class RpcModel(BaseModel):
    """
    An immutable model for decoding node RPC payloads.

    Node payloads use snake_case keys, encode 64-bit integers as strings and
    carry many fields the watcher does not read. Unknown fields are ignored and
    numeric strings are coerced.
    """

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
    )
