# Extracts tool invocations from free-form model output.
# Date: 2025-10-03
# Version: 0.2.0
"""
The model is asked to answer with a bare JSON tool call, but in practice it
also wraps calls in code fences, batches several calls in an array or under a
`tools` / `tool_calls` key, or writes `CALL_TOOL: name(args)` inline. The
strategies below run from the most structured to the most permissive and the
first one that yields anything wins.
"""

import json
import re
from typing import Any, Dict, List, Optional

from toolchat.models.tool_models import ToolRequest

NAME_KEYS = ("tool", "tool_name", "name")
ARGUMENT_KEYS = ("arguments", "args", "params")
BATCH_KEYS = ("tools", "tool_calls")

_CODE_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*\n([\s\S]*?)\n```", re.IGNORECASE)
_INLINE_CALL_PATTERN = re.compile(r"CALL_TOOL\s*:\s*([\w.\-]+)\s*\(([^)]+)\)", re.IGNORECASE)

_MISSING = object()


def parse_tool_requests(response_text: str) -> List[ToolRequest]:
    """
    Returns the tool requests found in `response_text`, in order of
    appearance. Never raises; text without a recognizable call yields [].
    """
    if not response_text:
        return []

    candidate = _extract_code_block(response_text) or response_text
    document = _load_json(candidate)

    request = _parse_single_object(document)
    if request is not None:
        return [request]

    requests = _parse_batch(document)
    if requests:
        return requests

    return _parse_inline_calls(response_text)


def has_tool_requests(response_text: str) -> bool:
    return bool(parse_tool_requests(response_text))


def _extract_code_block(text: str) -> Optional[str]:
    match = _CODE_BLOCK_PATTERN.search(text)
    if match is None:
        return None
    return match.group(1).strip()


def _load_json(text: str) -> Any:
    try:
        return json.loads(text.strip())
    except (ValueError, RecursionError):
        # Deeply nested output exhausts the decoder; treat it as plain text
        return _MISSING


def _parse_single_object(document: Any) -> Optional[ToolRequest]:
    if not isinstance(document, dict):
        return None
    return _extract_tool_request(document)


def _parse_batch(document: Any) -> List[ToolRequest]:
    if isinstance(document, list):
        return _requests_from_items(document)

    if not isinstance(document, dict):
        return []

    requests: List[ToolRequest] = []
    for key in BATCH_KEYS:
        value = document.get(key)
        if isinstance(value, list):
            requests.extend(_requests_from_items(value))
        elif isinstance(value, dict):
            request = _extract_tool_request(value)
            if request is not None:
                requests.append(request)
    return requests


def _requests_from_items(items: List[Any]) -> List[ToolRequest]:
    requests = []
    for item in items:
        if isinstance(item, dict):
            request = _extract_tool_request(item)
            if request is not None:
                requests.append(request)
    return requests


def _extract_tool_request(obj: Dict[str, Any]) -> Optional[ToolRequest]:
    tool_name = next(
        (obj[key] for key in NAME_KEYS if isinstance(obj.get(key), str) and obj[key].strip()),
        None,
    )
    if tool_name is None:
        # OpenAI-style entry: {"type": "function", "function": {"name": ..., "arguments": "..."}}
        function = obj.get("function")
        if isinstance(function, dict):
            return _extract_tool_request(function)
        return None

    arguments: Dict[str, Any] = {}
    for key in ARGUMENT_KEYS:
        value = _as_object(obj.get(key))
        if value is not None:
            arguments = value
            break

    return ToolRequest(tool_name=tool_name.strip(), arguments=json.dumps(arguments))


def _as_object(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        loaded = _load_json(value)
        if isinstance(loaded, dict):
            return loaded
    return None


def _parse_inline_calls(text: str) -> List[ToolRequest]:
    requests = []
    for match in _INLINE_CALL_PATTERN.finditer(text):
        tool_name, raw_arguments = match.group(1), match.group(2)
        arguments = _load_json(raw_arguments)
        if not isinstance(arguments, dict):
            arguments = {"input": raw_arguments}
        requests.append(ToolRequest(tool_name=tool_name, arguments=json.dumps(arguments)))
    return requests
