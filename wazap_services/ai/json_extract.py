from __future__ import annotations

import json
import re
from typing import Any, List

from ..common.errors import ParseError

# Del primer "[" al último "]", igual que el modelo suele envolver el JSON
# entre texto o bloques ```json.
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


def extract_json_array(text: str) -> List[Any]:
    """Extrae y parsea el primer array JSON de una respuesta de texto libre."""

    match = _ARRAY_RE.search(text or "")
    if not match:
        raise ParseError("no JSON array found in response")

    try:
        data = json.loads(match.group(0))
    except (ValueError, RecursionError) as exc:
        raise ParseError(f"invalid JSON array in response: {exc}") from exc

    if not isinstance(data, list):
        raise ParseError("response JSON is not an array")
    return data
