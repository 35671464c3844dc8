"""Pydantic models for Knockaut backend payloads."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..const import JSONRPC_VERSION, ObjectType, VariableType


class RpcRequest(BaseModel):
    """JSON-RPC request envelope posted to the backend."""

    model_config = ConfigDict(extra="forbid")

    jsonrpc: str = JSONRPC_VERSION
    method: str
    params: list[Any] = Field(default_factory=list)
    id: int


class RpcResponse(BaseModel):
    """JSON-RPC response body; either ``result`` or ``error`` is meaningful."""

    model_config = ConfigDict(extra="allow")

    jsonrpc: str | None = None
    id: int | str | None = None
    result: Any = None
    error: Any = None

    @property
    def failed(self) -> bool:
        """Return True when the backend reported an error."""

        return self.error is not None

    def error_message(self) -> str:
        """Return the backend error message, or the raw error rendered as text."""

        error = self.error
        if isinstance(error, dict):
            message = error.get("message")
            if isinstance(message, str) and message:
                return message
        return str(error)

    def error_code(self) -> int | None:
        """Return the JSON-RPC error code when the backend supplied one."""

        error = self.error
        if isinstance(error, dict) and isinstance(error.get("code"), int):
            return error["code"]
        return None


class WebSocketMessage(BaseModel):
    """Push frame delivered over the websocket channel."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    message: int = Field(alias="Message")
    data: list[Any] = Field(default_factory=list, alias="Data")
    sender_id: int | None = Field(default=None, alias="SenderID")
    timestamp: int | None = Field(default=None, alias="TimeStamp")


class ProfileAssociation(BaseModel):
    """Value to icon association declared by a variable profile."""

    model_config = ConfigDict(extra="ignore")

    value: Any = Field(default=None, validation_alias=AliasChoices("value", "Value"))
    icon: str = Field(default="", validation_alias=AliasChoices("icon", "Icon"))
    name: str = Field(default="", validation_alias=AliasChoices("name", "Name"))


class VariableProfile(BaseModel):
    """Display metadata for a variable (icon, associations, range)."""

    model_config = ConfigDict(extra="ignore")

    icon: str = Field(default="", validation_alias=AliasChoices("icon", "Icon"))
    associations: list[ProfileAssociation] = Field(
        default_factory=list,
        validation_alias=AliasChoices("associations", "Associations"),
    )
    min_value: float = Field(
        default=0.0, validation_alias=AliasChoices("minValue", "MinValue", "min_value")
    )
    max_value: float = Field(
        default=0.0, validation_alias=AliasChoices("maxValue", "MaxValue", "max_value")
    )
    variable_type: VariableType | None = Field(
        default=None, validation_alias=AliasChoices("type", "ProfileType")
    )

    @field_validator("icon", mode="before")
    @classmethod
    def _none_icon(cls, value: Any) -> Any:
        """Treat a null icon as unset."""

        return "" if value is None else value


class VariableData(BaseModel):
    """Variable specific part of a snapshot object."""

    model_config = ConfigDict(extra="ignore")

    value: Any = None
    variable_type: VariableType = Field(
        default=VariableType.STRING,
        validation_alias=AliasChoices("type", "VariableType"),
    )
    profile: str = Field(
        default="", validation_alias=AliasChoices("profile", "VariableProfile")
    )
    custom_profile: str = Field(
        default="",
        validation_alias=AliasChoices("customProfile", "VariableCustomProfile"),
    )


class SnapshotObject(BaseModel):
    """Object from the backend snapshot (category, instance, variable, ...)."""

    model_config = ConfigDict(extra="allow")

    type: ObjectType
    icon: str = ""
    name: str = ""
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("icon", mode="before")
    @classmethod
    def _none_icon(cls, value: Any) -> Any:
        """Treat a null icon as unset."""

        return "" if value is None else value

    @field_validator("data", mode="before")
    @classmethod
    def _none_data(cls, value: Any) -> Any:
        """Objects without payload carry an empty mapping."""

        return {} if value is None else value

    def variable(self) -> VariableData | None:
        """Return the variable payload when this object is a variable."""

        if self.type is not ObjectType.VARIABLE:
            return None
        return VariableData.model_validate(self.data)

    def link_target(self) -> int | None:
        """Return the target object id when this object is a link."""

        if self.type is not ObjectType.LINK:
            return None
        target = self.data.get("targetID", self.data.get("TargetID"))
        try:
            return int(target)
        except (TypeError, ValueError):
            return None


class Configurator(BaseModel):
    """Configurator (web front) entry returned by ``WFC_GetConfigurators``."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: int = Field(alias="ID")
    name: str = Field(default="", alias="Name")


class Snapshot(BaseModel):
    """Object graph and profiles returned by ``WFC_GetSnapshot``."""

    model_config = ConfigDict(extra="allow")

    objects: dict[str, Any] = Field(default_factory=dict)
    profiles: dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "Configurator",
    "ProfileAssociation",
    "RpcRequest",
    "RpcResponse",
    "Snapshot",
    "SnapshotObject",
    "VariableData",
    "VariableProfile",
    "WebSocketMessage",
]
