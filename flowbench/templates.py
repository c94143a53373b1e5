"""Predefined workflow templates users can start from.

Each template is built by a factory so every call yields fresh node ids
(``<kind>_<8 hex chars>``) and an independent Workflow object.
"""

from __future__ import annotations

import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple

from .engine.models import Edge, Node, NodeKind, Workflow


def create_template(
    name: str,
    description: str,
    nodes: List[Dict[str, Any]],
    connections: List[Tuple[int, int]],
) -> Workflow:
    """Build a workflow from node specs and index-based connections.

    Args:
        name: Workflow name
        description: One-line summary
        nodes: Dicts with ``kind``, ``data`` and optional ``config`` / ``position``
        connections: ``(source_index, target_index)`` pairs into ``nodes``
    """
    built = []
    for spec in nodes:
        kind = NodeKind(spec["kind"])
        built.append(Node(
            id=f"{kind.value}_{uuid.uuid4().hex[:8]}",
            kind=kind,
            data=dict(spec.get("data", {})),
            config=dict(spec.get("config", {})),
            position=spec.get("position") or {"x": 0, "y": 0},
        ))

    edges = [Edge(source=built[s].id, target=built[t].id) for s, t in connections]
    return Workflow(name=name, description=description, nodes=built, edges=edges)


def _chain(count: int) -> List[Tuple[int, int]]:
    return [(i, i + 1) for i in range(count - 1)]


CLAUDE_SONNET = {
    "name": "Claude 3.5 Sonnet",
    "provider": "Anthropic",
    "model_id": "claude-3-5-sonnet",
    "input_price": 3.00,
    "output_price": 15.00,
}


def text_generation_workflow() -> Workflow:
    nodes = [
        {"kind": "input", "data": {"label": "Topic", "default_value": "artificial intelligence"}},
        {
            "kind": "llm",
            "data": dict(CLAUDE_SONNET),
            "config": {
                "temperature": 0.7,
                "max_tokens": 1000,
                "prompt": (
                    "Write a creative and informative blog post about {{input}}. Include a catchy "
                    "title, introduction, several key points, and a conclusion."
                ),
            },
        },
        {"kind": "package", "data": {"package_name": "marked"}, "config": {"code": "return marked.parse(input)"}},
        {"kind": "output", "data": {"label": "Formatted Content"}},
    ]
    return create_template("Text Generation", "Generate creative text with Claude", nodes, _chain(len(nodes)))


def data_analysis_workflow() -> Workflow:
    nodes = [
        {
            "kind": "input",
            "data": {
                "label": "CSV Data",
                "default_value": "id,name,value\n1,Alpha,34\n2,Beta,56\n3,Gamma,78\n4,Delta,90\n5,Epsilon,12",
            },
        },
        {
            "kind": "package",
            "data": {"package_name": "papaparse"},
            "config": {"code": "return Papa.parse(input, {'header': True})['data']"},
        },
        {
            "kind": "package",
            "data": {"package_name": "lodash"},
            "config": {
                "code": (
                    "value = lambda row: float(row['value'])\n"
                    "return {\n"
                    "    'summary': {\n"
                    "        'count': len(input),\n"
                    "        'avg_value': _.meanBy(input, value),\n"
                    "        'min_value': _.minBy(input, value)['value'],\n"
                    "        'max_value': _.maxBy(input, value)['value'],\n"
                    "    },\n"
                    "    'data': input,\n"
                    "}"
                ),
            },
        },
        {
            "kind": "llm",
            "data": {
                "name": "GPT-4o Mini",
                "provider": "OpenAI",
                "model_id": "gpt-4o-mini",
                "input_price": 0.15,
                "output_price": 0.60,
            },
            "config": {
                "temperature": 0.3,
                "max_tokens": 1000,
                "prompt": (
                    "Analyze this dataset and provide insights: {{input}}. Include patterns, "
                    "anomalies, and business recommendations."
                ),
            },
        },
        {"kind": "output", "data": {"label": "Analysis Results"}},
    ]
    return create_template("Data Analysis", "Analyze CSV data with AI", nodes, _chain(len(nodes)))


def data_validation_workflow() -> Workflow:
    nodes = [
        {
            "kind": "input",
            "data": {
                "label": "Input Data",
                "default_value": {"name": "John Doe", "email": "john@example.com", "age": "thirty"},
            },
        },
        {
            "kind": "package",
            "data": {"package_name": "joi"},
            "config": {
                "code": (
                    "schema = Joi.object({\n"
                    "    'name': Joi.string().required(),\n"
                    "    'email': Joi.string().email().required(),\n"
                    "    'age': Joi.number().min(0),\n"
                    "})\n"
                    "result = schema.validate(input)\n"
                    "error = result.get('error')\n"
                    "return {\n"
                    "    'valid': error is None,\n"
                    "    'value': result['value'],\n"
                    "    'error': error['message'] if error else None,\n"
                    "}"
                ),
            },
        },
        {
            "kind": "llm",
            "data": {
                "name": "GPT-4o",
                "provider": "OpenAI",
                "model_id": "gpt-4o",
                "input_price": 5.00,
                "output_price": 15.00,
            },
            "config": {
                "temperature": 0.3,
                "max_tokens": 800,
                "prompt": (
                    "Analyze this validation result: {{input}}\n\n"
                    "If the data is valid, describe why it passed validation.\n"
                    "If the data is invalid, explain the issues and suggest corrections.\n"
                    "Format your response as a detailed report that a data engineer could use."
                ),
            },
        },
        {"kind": "output", "data": {"label": "Validation Report"}},
    ]
    return create_template("Data Validator", "Validate and clean data inputs", nodes, _chain(len(nodes)))


def translation_workflow() -> Workflow:
    nodes = [
        {
            "kind": "input",
            "data": {
                "label": "Original Text",
                "default_value": "Artificial intelligence is transforming industries around the world.",
            },
        },
        {
            "kind": "package",
            "data": {"package_name": "validator"},
            "config": {
                "code": (
                    "text = input.strip() if isinstance(input, str) else ''\n"
                    "return {\n"
                    "    'original': text,\n"
                    "    'language': 'en' if text.isascii() else 'unknown',\n"
                    "    'word_count': len(text.split()),\n"
                    "    'sanitized': validator.escape(text),\n"
                    "}"
                ),
            },
        },
        {
            "kind": "llm",
            "data": dict(CLAUDE_SONNET),
            "config": {
                "temperature": 0.3,
                "max_tokens": 1000,
                "prompt": (
                    "Translate the following text into Spanish, French, and Chinese (Simplified).\n\n"
                    "Original text: {{input.original}}\n"
                    "Detected language: {{input.language}}\n"
                    "Word count: {{input.word_count}}"
                ),
            },
        },
        {"kind": "output", "data": {"label": "Translation Results"}},
    ]
    return create_template("Content Translator", "Translate and format content", nodes, _chain(len(nodes)))


def chat_assistant_workflow() -> Workflow:
    nodes = [
        {
            "kind": "input",
            "data": {"label": "User Message", "default_value": "What are the main applications of AI in healthcare?"},
        },
        {
            "kind": "package",
            "data": {"package_name": "dayjs"},
            "config": {
                "code": (
                    "now = dayjs()\n"
                    "return {\n"
                    "    'message': input,\n"
                    "    'timestamp': now.format('YYYY-MM-DD HH:mm:ss'),\n"
                    "    'context': {'previous_messages': [], 'date': now.format('MMMM D, YYYY')},\n"
                    "}"
                ),
            },
        },
        {
            "kind": "llm",
            "data": dict(CLAUDE_SONNET),
            "config": {
                "temperature": 0.7,
                "max_tokens": 1000,
                "prompt": (
                    "You are an AI assistant having a conversation with a user. Respond to their "
                    "message thoughtfully and helpfully.\n\n"
                    "Current date: {{input.context.date}}\n"
                    "User's message: {{input.message}}"
                ),
            },
        },
        {
            "kind": "package",
            "data": {"package_name": "marked"},
            "config": {
                "code": "return {'original_response': input, 'formatted_response': marked.parse(input)}",
            },
        },
        {"kind": "output", "data": {"label": "Assistant Response"}},
    ]
    return create_template(
        "AI Chat Assistant", "Chat assistant with memory and processing", nodes, _chain(len(nodes)),
    )


TEMPLATES: Dict[str, Callable[[], Workflow]] = {
    "text_generation": text_generation_workflow,
    "data_analysis": data_analysis_workflow,
    "data_validation": data_validation_workflow,
    "translation": translation_workflow,
    "chat_assistant": chat_assistant_workflow,
}


def get_template(key: str) -> Optional[Workflow]:
    """Fresh copy of the named template, or None."""
    factory = TEMPLATES.get(key)
    return factory() if factory else None


def get_all_templates() -> List[Workflow]:
    return [factory() for factory in TEMPLATES.values()]
