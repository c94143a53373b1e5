"""Pydantic models for loading workflow definitions from JSON or dicts.

Accepts both shapes in circulation:
- Canvas export: ``type`` of input/llm/npm/output, ``connections`` list
- Native: ``kind`` of input/llm/package/output, ``edges`` list
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .engine.models import Edge, Node, NodeStatus, Workflow
from .errors import ShapeError

# Canvas node types that map onto a different kind
_KIND_ALIASES = {"npm": "package", "model": "llm"}


class NodeSchema(BaseModel):
    """Node in either format; ``kind`` wins over ``type`` when both are present."""
    id: str
    kind: Optional[str] = None
    type: Optional[str] = None
    data: dict = Field(default_factory=dict)
    config: dict = Field(default_factory=dict)
    position: Optional[dict] = None

    def get_kind(self) -> str:
        raw = (self.kind or self.type or "").lower()
        return _KIND_ALIASES.get(raw, raw)

    def to_node(self) -> Node:
        return Node(
            id=self.id,
            kind=self.get_kind(),
            data=dict(self.data),
            config=dict(self.config),
            status=NodeStatus.READY,
            position=self.position,
        )


class EdgeSchema(BaseModel):
    source: str
    target: str
    id: Optional[str] = None


class WorkflowSchema(BaseModel):
    """Full workflow definition."""
    name: str = "Untitled Workflow"
    id: Optional[str] = None
    description: Optional[str] = None
    nodes: List[NodeSchema] = Field(default_factory=list)
    edges: List[EdgeSchema] = Field(default_factory=list)
    connections: List[EdgeSchema] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("workflow name cannot be empty")
        return v

    def to_workflow(self) -> Workflow:
        return Workflow(
            name=self.name,
            id=self.id,
            description=self.description or "",
            nodes=[node.to_node() for node in self.nodes],
            edges=[
                Edge(source=edge.source, target=edge.target, id=edge.id)
                for edge in [*self.edges, *self.connections]
            ],
        )


def load_workflow(payload: Dict[str, Any]) -> Workflow:
    """Build a Workflow from a dict.

    Raises:
        ShapeError: The payload does not describe a workflow
    """
    try:
        return WorkflowSchema.model_validate(payload).to_workflow()
    except ValidationError as e:
        raise ShapeError(f"Invalid workflow definition: {e}") from e


def load_workflow_json(text: str) -> Workflow:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ShapeError(f"Invalid workflow JSON: {e}") from e
    if not isinstance(payload, dict):
        raise ShapeError("Workflow JSON must be an object")
    return load_workflow(payload)


def dump_workflow(workflow: Workflow) -> Dict[str, Any]:
    """Serialise a Workflow to the native dict shape accepted by load_workflow."""
    return {
        "name": workflow.name,
        "id": workflow.id,
        "description": workflow.description,
        "nodes": [
            {
                "id": node.id,
                "kind": getattr(node.kind, "value", node.kind),
                "data": node.data,
                "config": node.config,
                "position": node.position,
            }
            for node in workflow.nodes
        ],
        "edges": [{"source": e.source, "target": e.target, "id": e.id} for e in workflow.edges],
    }
