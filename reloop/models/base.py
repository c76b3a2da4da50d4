"""
Shared helpers for the entity models.
"""

from enum import Enum
from typing import Dict, Iterable, Set

from pydantic import BaseModel, ConfigDict, Field

from reloop.errors import PreconditionError
from reloop.utils.utils import new_id


class Document(BaseModel):
    """A stored entity. The id is persisted as ``_id``."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    id: str = Field(default_factory=new_id, alias="_id")

    def to_document(self) -> dict:
        return plain(self.model_dump(by_alias=True, mode="python"))

    @classmethod
    def from_document(cls, document: dict):
        return cls.model_validate(document)


def check_transition(
    transitions: Dict[Enum, Set[Enum]],
    current: Enum,
    target: Enum,
    entity: str,
):
    """Raise PreconditionError unless ``current -> target`` is a legal edge."""
    if target in transitions.get(current, set()):
        return
    sources = [state for state, targets in transitions.items() if target in targets]
    raise PreconditionError(
        f"Cannot move {entity} from {current.value} to {target.value}",
        required=sources,
        actual=current,
    )


def enum_values(states: Iterable[Enum]):
    return [state.value for state in states]


def plain(value):
    """Replace enum members with their values so documents stay BSON friendly."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [plain(item) for item in value]
    return value
