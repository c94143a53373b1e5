"""Tests for loading workflow definitions from dicts and JSON."""

import json

import pytest

from flowbench.engine.models import NodeStatus
from flowbench.errors import ShapeError
from flowbench.schemas import NodeSchema, dump_workflow, load_workflow, load_workflow_json


CANVAS_EXPORT = {
    "name": "Canvas",
    "nodes": [
        {"id": "in", "type": "input", "data": {"label": "Text"}, "position": {"x": 10, "y": 20}},
        {"id": "pkg", "type": "npm", "data": {"packageName": "lodash"}, "config": {"code": "return input"}},
        {"id": "out", "type": "output", "data": {}},
    ],
    "connections": [{"source": "in", "target": "pkg"}, {"source": "pkg", "target": "out"}],
}


class TestLoadWorkflow:

    def test_canvas_shape(self):
        workflow = load_workflow(CANVAS_EXPORT)

        assert [node.kind for node in workflow.nodes] == ["input", "package", "output"]
        assert [(e.source, e.target) for e in workflow.edges] == [("in", "pkg"), ("pkg", "out")]
        assert workflow.nodes[0].position == {"x": 10, "y": 20}
        assert workflow.nodes[0].status == NodeStatus.READY
        assert workflow.workflow_id == "Canvas"

    def test_native_shape(self):
        workflow = load_workflow({
            "name": "Native",
            "id": "wf-1",
            "nodes": [{"id": "a", "kind": "LLM", "data": {"provider": "mock"}}],
            "edges": [],
        })
        assert workflow.nodes[0].kind == "llm"
        assert workflow.workflow_id == "wf-1"

    def test_kind_wins_over_type(self):
        assert NodeSchema(id="x", kind="output", type="input").get_kind() == "output"

    def test_defaults(self):
        workflow = load_workflow({})
        assert workflow.name == "Untitled Workflow"
        assert workflow.nodes == []

    def test_blank_name(self):
        with pytest.raises(ShapeError, match="name cannot be empty"):
            load_workflow({"name": "  "})

    def test_node_without_id(self):
        with pytest.raises(ShapeError, match="Invalid workflow definition"):
            load_workflow({"nodes": [{"type": "input"}]})


class TestJson:

    def test_round_trip(self):
        workflow = load_workflow(CANVAS_EXPORT)
        again = load_workflow_json(json.dumps(dump_workflow(workflow)))
        assert dump_workflow(again) == dump_workflow(workflow)

    def test_invalid_json(self):
        with pytest.raises(ShapeError, match="Invalid workflow JSON"):
            load_workflow_json("{nodes:")

    def test_non_object(self):
        with pytest.raises(ShapeError, match="must be an object"):
            load_workflow_json("[]")


@pytest.mark.asyncio
async def test_loaded_workflow_runs(executor):
    result = await executor.execute(load_workflow(CANVAS_EXPORT), {"hello": "world"})
    assert result.output_of("out") == {"hello": "world"}
