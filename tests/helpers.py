"""Workflow builders shared by the test modules."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from flowbench.engine.models import Edge, Node, Workflow


def make_node(node_id: str, kind: str, data: Optional[Dict[str, Any]] = None,
              config: Optional[Dict[str, Any]] = None) -> Node:
    return Node(id=node_id, kind=kind, data=data or {}, config=config or {})


def make_workflow(nodes: List[Node], edges: List[Tuple[str, str]], name: str = "test") -> Workflow:
    return Workflow(name=name, nodes=nodes, edges=[Edge(source=s, target=t) for s, t in edges])


def lodash_node(node_id: str, code: str) -> Node:
    return make_node(node_id, "package", {"package_name": "lodash"}, {"code": code})


def llm_node(node_id: str, provider: str = "mock", **data: Any) -> Node:
    payload = {"provider": provider, "model_id": "mock-model", "input_price": 0.0, "output_price": 0.0}
    payload.update(data)
    return make_node(node_id, "llm", payload)
