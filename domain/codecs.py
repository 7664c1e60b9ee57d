"""Storage codec for the strengths/weaknesses columns.

Both lists are kept as a JSON array in a text column. Reading is lenient:
blank, malformed or non-list content decodes to an empty list so a damaged
row never breaks a listing.
"""
import json
from typing import Iterable, List, Optional


def encode_string_list(values: Optional[Iterable[str]]) -> str:
    if values is None:
        return "[]"
    return json.dumps([str(v) for v in values], ensure_ascii=False)


def decode_string_list(raw: Optional[str]) -> List[str]:
    if raw is None or not raw.strip():
        return []
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, str)]
