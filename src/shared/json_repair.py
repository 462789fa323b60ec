"""
Best-effort repair of near-JSON text returned by generative models.

Models frequently wrap JSON in markdown fences, prefix it with prose, stop
generating mid-structure or forget commas. The helpers here extract the first
structure of the expected kind, close whatever was left open and hand the
result to the json module. Nothing here raises on bad input: callers get a
RepairResult and decide whether a failure is fatal.
"""
import json
import re
from dataclasses import dataclass
from typing import Any, Optional

from src.shared.errors import RepairFailure, RepairFailureReason

_CODE_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_PROSE_PREFIX_RE = re.compile(
    r"^(?:here(?:'s| is| are)?|response|output|example(?: format| response)?)[^\"\n{\[]*:\s*",
    re.IGNORECASE,
)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_DANGLING_KEY_RE = re.compile(r',?\s*"(?:[^"\\]|\\.)*"\s*:\s*$')
_ORPHAN_KEY_RE = re.compile(r'([{,])\s*"(?:[^"\\]|\\.)*"\s*$')

_CLOSERS = {"{": "}", "[": "]"}


@dataclass
class RepairResult:
    """Outcome of coercing model text into structured data."""

    value: Any = None
    failure: Optional[RepairFailureReason] = None
    repaired_text: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None

    def unwrap(self, raw: str = "") -> Any:
        if self.failure is not None:
            raise RepairFailure(f"Could not parse model output ({self.failure.value})", self.failure, raw)
        return self.value


def _insert_missing_commas(text: str) -> str:
    """Insert commas between adjacent values, e.g. `"a" "b"` or `} {`."""
    result: list[str] = []
    in_string = False
    escape_next = False
    length = len(text)

    for i, char in enumerate(text):
        result.append(char)
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = in_string
            continue
        if char == '"':
            in_string = not in_string
            if in_string:
                continue
        elif in_string or char not in "}]":
            continue

        j = i + 1
        while j < length and text[j].isspace():
            j += 1
        if j >= length:
            continue
        next_char = text[j]
        # A closed string followed by another string was a value, not a key.
        if char == '"' and next_char == '"':
            result.append(",")
        elif char in "}]" and next_char in '"{[':
            result.append(",")

    return "".join(result)


def repair_json(json_str: str) -> str:
    """Close unterminated strings, objects and arrays and drop trailing commas."""
    repaired = _insert_missing_commas(json_str.strip())
    repaired = _TRAILING_COMMA_RE.sub(r"\1", repaired)
    repaired = repaired.rstrip()
    if repaired.endswith(","):
        repaired = repaired[:-1]

    stack: list[str] = []
    in_string = False
    escape_next = False
    for char in repaired:
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = in_string
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in "}]" and stack and stack[-1] == char:
            stack.pop()

    if in_string:
        repaired += '"'
    # Inside an object a trailing string with no colon can only be a cut-off key.
    if stack and stack[-1] == "}":
        repaired = _ORPHAN_KEY_RE.sub(r"\1", repaired)
    # A key whose value never arrived cannot be completed; drop it.
    repaired = _DANGLING_KEY_RE.sub("", repaired.rstrip())
    repaired = _TRAILING_COMMA_RE.sub(r"\1", repaired.rstrip().rstrip(","))

    return repaired + "".join(reversed(stack))


def _structure_end(text: str) -> Optional[int]:
    """Index just past the first balanced structure starting at text[0]."""
    stack: list[str] = []
    in_string = False
    escape_next = False
    for i, char in enumerate(text):
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = in_string
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in "}]" and stack and stack[-1] == char:
            stack.pop()
            if not stack:
                return i + 1
    return None


def extract_and_repair_json(content: str, expect_array: bool = False) -> str:
    """
    Extract the JSON payload from an LLM response and repair it.

    Handles markdown code fences, leading prose such as "Here is the JSON:",
    trailing commentary after a complete structure, and truncated output.
    """
    json_str = content.strip()

    match = _CODE_BLOCK_RE.search(json_str)
    if match and match.group(1).strip():
        json_str = match.group(1).strip()

    opener = "[" if expect_array else "{"
    start = json_str.find(opener)
    if start == -1 and expect_array:
        start = json_str.find("{")
    if start > 0:
        json_str = json_str[start:]
    elif start == -1:
        json_str = _PROSE_PREFIX_RE.sub("", json_str)
    json_str = json_str.strip()

    if expect_array and not json_str.startswith("["):
        if json_str.startswith("{"):
            last_brace = json_str.rfind("}")
            if last_brace != -1:
                json_str = f"[{json_str[:last_brace + 1]}]"
            else:
                json_str = f"[{json_str}"
        else:
            json_str = f"[{json_str}"
    elif not expect_array and not json_str.startswith(("{", "[")):
        json_str = f"{{{json_str}"

    end = _structure_end(json_str)
    if end is not None:
        json_str = json_str[:end]

    return repair_json(json_str)


def parse_structured(content: Optional[str], expect_array: bool = False) -> RepairResult:
    """Repair and parse model output, reporting a typed failure instead of raising."""
    if content is None or not content.strip():
        return RepairResult(failure=RepairFailureReason.EMPTY)

    repaired = extract_and_repair_json(content, expect_array)
    try:
        value = json.loads(repaired)
    except json.JSONDecodeError:
        return RepairResult(failure=RepairFailureReason.INVALID_JSON, repaired_text=repaired)

    expected_type = list if expect_array else dict
    if not isinstance(value, expected_type):
        return RepairResult(value=value, failure=RepairFailureReason.WRONG_SHAPE, repaired_text=repaired)

    return RepairResult(value=value, repaired_text=repaired)
