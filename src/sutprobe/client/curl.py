from __future__ import annotations

import json
from typing import Any, Mapping

from sutprobe.errors import ConfigError

MAX_LOGGED_BODY_CHARS = 1000


def render_curl(
    method: str,
    url: str,
    headers: Mapping[str, str],
    payload: Any,
    verbose: bool = False,
) -> str:
    """Render a request as a copy-pasteable curl command, for re-running it by hand.

    Truncated bodies are not copy-pasteable; pass verbose=True to keep them whole.
    """
    header_lines = ["-H 'Content-Type: application/json'"]
    for key, value in headers.items():
        if "'" in value:
            raise ConfigError(f"Header value of {key} contains ', cannot render a curl command")
        header_lines.append(f"-H '{key}: {value}'")

    data_text = json.dumps(payload, ensure_ascii=False).replace("'", "'\\''")
    if len(data_text) > MAX_LOGGED_BODY_CHARS and not verbose:
        data_text = data_text[:MAX_LOGGED_BODY_CHARS] + "\n       ..."

    lines = [f"curl  -X {method.upper()}", *header_lines, f"-d '{data_text}'", url]
    return "  \\\n    ".join(lines)
