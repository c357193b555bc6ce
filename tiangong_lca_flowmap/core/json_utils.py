"""Helpers for parsing JSON payloads returned as text by MCP tools."""

from __future__ import annotations

import json
import re
from typing import Any

from .exceptions import CatalogError

CODE_BLOCK_PATTERN = re.compile(r"```(?:json)?(.*?)```", flags=re.DOTALL | re.IGNORECASE)


def extract_json_blob(content: str) -> str:
    stripped = content.strip()
    match = CODE_BLOCK_PATTERN.search(stripped)
    if match:
        stripped = match.group(1)
    return stripped.strip()


def parse_json_response(content: str) -> Any:
    cleaned = extract_json_blob(content)
    for candidate in (cleaned, cleaned.strip('"')):
        if not candidate:
            continue
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    raise CatalogError("Unable to parse JSON from catalog response")

