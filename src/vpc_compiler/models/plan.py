"""Plan action models produced by the differ."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .graph import ResourceKind, ResourceNode


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)

    @property
    def target_id(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class Create(_Action):
    action: Literal["create"] = "create"
    node: ResourceNode

    @property
    def target_id(self) -> str:
        return self.node.id


class Update(_Action):
    action: Literal["update"] = "update"
    node_id: str
    changed_fields: tuple[str, ...]
    node: ResourceNode

    @property
    def target_id(self) -> str:
        return self.node_id


class Replace(_Action):
    action: Literal["replace"] = "replace"
    node_id: str
    reason: str
    changed_fields: tuple[str, ...] = ()
    node: ResourceNode

    @property
    def target_id(self) -> str:
        return self.node_id


class Delete(_Action):
    action: Literal["delete"] = "delete"
    node_id: str
    kind: ResourceKind

    @property
    def target_id(self) -> str:
        return self.node_id


PlanAction = Annotated[
    Union[Create, Update, Replace, Delete], Field(discriminator="action")
]
