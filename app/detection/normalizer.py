"""
Score normalization for Winston responses.

Winston has answered with several shapes over time: REST bodies with a
top-level `score` / `ai_probability` / `human_probability`, and MCP JSON-RPC
envelopes that wrap the same fields in `result.output` or `result.content`
(where `content` is a list of text parts holding a JSON document). Scores
arrive either as fractions (0.87) or percentages (87, "87%").

`extract_ai_score` walks a fixed, ordered candidate list level by level and
returns the first value that normalizes into [0, 1]. Anything that does not
fit returns None; callers decide the fallback.
"""

import json
import math
from collections.abc import Mapping
from typing import Any, Callable, Iterator, Optional

# (field name, transform applied after normalization), in priority order
SCORE_CANDIDATES: tuple[tuple[str, Callable[[float], float]], ...] = (
    ("ai_probability", lambda v: v),
    ("aiProbability", lambda v: v),
    ("ai_score", lambda v: v),
    ("aiScore", lambda v: v),
    ("score", lambda v: v),
    ("human_probability", lambda v: 1.0 - v),
    ("humanProbability", lambda v: 1.0 - v),
)

# Envelope keys searched, in order, for the next nesting level
WRAPPER_KEYS = ("data", "result", "output", "content")

# Levels searched below the top-level object
MAX_WRAPPER_DEPTH = len(WRAPPER_KEYS)


def normalize_scalar(value: Any) -> Optional[float]:
    """
    Convert a loosely-typed score into a probability in [0, 1].

    0..1 is taken as a fraction and 1..100 as a percentage; `1` itself is
    the fraction 1.0. Anything else (out of range, non-finite, unparsable)
    is None. Values are never clamped.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("%"):
            text = text[:-1].strip()
        try:
            number = float(text)
        except ValueError:
            return None
    elif isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            # integers too large for a float are out of range anyway
            return None
    else:
        return None

    if not math.isfinite(number):
        return None
    if 0.0 <= number <= 1.0:
        return number
    if 1.0 < number <= 100.0:
        return number / 100.0
    return None


def _decode_json_text(text: str) -> Optional[Mapping]:
    try:
        decoded = json.loads(text)
    except (ValueError, RecursionError):
        return None
    return decoded if isinstance(decoded, Mapping) else None


def _unwrap(value: Any) -> Iterator[Mapping]:
    """Yield the mappings a wrapper value contributes to the next level."""
    if isinstance(value, Mapping):
        yield value
    elif isinstance(value, str):
        decoded = _decode_json_text(value)
        if decoded is not None:
            yield decoded
    elif isinstance(value, list):
        for item in value:
            if not isinstance(item, Mapping):
                continue
            # MCP content part: {"type": "text", "text": "{...json...}"}
            if item.get("type") == "text" and isinstance(item.get("text"), str):
                decoded = _decode_json_text(item["text"])
                if decoded is not None:
                    yield decoded
                    continue
            yield item


def _score_from(node: Mapping) -> Optional[float]:
    for key, transform in SCORE_CANDIDATES:
        if key not in node:
            continue
        normalized = normalize_scalar(node[key])
        if normalized is not None:
            return transform(normalized)
    return None


def extract_ai_score(response: Any) -> Optional[float]:
    """Best-effort AI probability from a raw provider response, or None."""
    if not isinstance(response, Mapping):
        return None

    # id -> node; holding the node keeps its id from being reused mid-walk
    seen: dict[int, Mapping] = {id(response): response}
    level: list[Mapping] = [response]
    for _ in range(MAX_WRAPPER_DEPTH + 1):
        for node in level:
            score = _score_from(node)
            if score is not None:
                return score

        next_level: list[Mapping] = []
        for node in level:
            for key in WRAPPER_KEYS:
                if key not in node:
                    continue
                for child in _unwrap(node[key]):
                    if id(child) not in seen:
                        seen[id(child)] = child
                        next_level.append(child)
        if not next_level:
            break
        level = next_level
    return None
