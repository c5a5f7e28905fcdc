"""Pydantic schemas for the persisted flow document."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PathMapEntrySchema(BaseModel):
    """One input or output mapping entry."""

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(..., alias="From", description="Source path, literal or template")
    to: str = Field(..., alias="To", description="Destination parameter name or output path")


class SerializableNode(BaseModel):
    """Schema for a node in a persisted flow."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="Id", min_length=1, description="Unique node id")
    section: str | None = Field(None, alias="Section", description="Palette section")
    pos_x: float = Field(0.0, alias="PosX", description="UI x position")
    pos_y: float = Field(0.0, alias="PosY", description="UI y position")
    function_id: str = Field(..., alias="FunctionId", description="Registry identifier of the backing function")
    input_map: list[PathMapEntrySchema] = Field(default_factory=list, alias="InputMap")
    output_map: list[PathMapEntrySchema] = Field(default_factory=list, alias="OutputMap")
    declared_output_ports: list[str] = Field(default_factory=list, alias="DeclaredOutputPorts")
    merge_output_with_input: bool = Field(False, alias="MergeOutputWithInput")
    input: dict[str, Any] | None = Field(None, alias="Input", description="Last formatted input")
    result: dict[str, Any] | None = Field(None, alias="Result", description="Last computed result")
    input_node_ids: list[str] = Field(default_factory=list, alias="InputNodeIds")
    output_node_ids: list[str] = Field(default_factory=list, alias="OutputNodeIds")
    output_port_connections: dict[str, list[str]] = Field(
        default_factory=dict,
        alias="OutputPortConnections",
        description="Target node ids per output port",
    )


class SerializableFlow(BaseModel):
    """Schema for a persisted flow document."""

    model_config = ConfigDict(populate_by_name=True)

    version: str = Field(..., alias="Version", description="Document format version")
    flow_name: str = Field(..., alias="FlowName", description="Display name of the flow")
    created_at: datetime = Field(..., alias="CreatedAt", description="When the document was written")
    metadata: dict[str, Any] = Field(..., alias="Metadata")
    nodes: list[SerializableNode] = Field(..., alias="Nodes")
