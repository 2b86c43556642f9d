"""
Template Resolver

Resolve ${path} expressions against a run's data-flow context.

Grammar (total: anything that does not parse is literal text):

    template  := part*
    part      := reference | text
    reference := "${" ws path ws "}"
    path      := segment ("." segment)*
    segment   := [A-Za-z0-9_-]+

The first path segment selects "input" or a recorded step id. Further
segments index into that entry: for a step, "result", "success", "error",
"duration", "status" or "attempts"; inside a result, dictionary keys and list
indices. Resolution never raises; an unresolvable path yields UNDEFINED.
"""

import json
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, List, Tuple, Union


class _Undefined:
    """Marker for a path that could not be resolved."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


UNDEFINED = _Undefined()

INPUT_ROOT = "input"
STEP_FIELDS = ("result", "success", "error", "duration", "status", "attempts")


@dataclass(frozen=True)
class Text:
    """Literal text between references."""

    value: str


@dataclass(frozen=True)
class Reference:
    """A parsed ${path} reference."""

    segments: Tuple[str, ...]
    raw: str

    @property
    def root(self) -> str:
        return self.segments[0]


Node = Union[Text, Reference]


def _is_segment_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_-"


class _TemplateParser:
    """Recursive-descent parser producing Text and Reference nodes."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0

    def parse(self) -> Tuple[Node, ...]:
        nodes: List[Node] = []
        buffer: List[str] = []

        while self.pos < len(self.source):
            if self.source.startswith("${", self.pos):
                start = self.pos
                reference = self._parse_reference()
                if reference is not None:
                    if buffer:
                        nodes.append(Text("".join(buffer)))
                        buffer = []
                    nodes.append(reference)
                    continue
                # Not a reference: keep "$" as text and rescan from "{"
                self.pos = start + 1
                buffer.append("$")
                continue

            buffer.append(self.source[self.pos])
            self.pos += 1

        if buffer:
            nodes.append(Text("".join(buffer)))
        return tuple(nodes)

    def _parse_reference(self):
        start = self.pos
        self.pos += 2
        self._skip_whitespace()

        segments = self._parse_path()
        if segments is None:
            self.pos = start
            return None

        self._skip_whitespace()
        if self.pos >= len(self.source) or self.source[self.pos] != "}":
            self.pos = start
            return None

        self.pos += 1
        return Reference(tuple(segments), self.source[start:self.pos])

    def _parse_path(self):
        segments = []
        while True:
            segment = self._parse_segment()
            if not segment:
                return None
            segments.append(segment)
            if self.pos < len(self.source) and self.source[self.pos] == ".":
                self.pos += 1
                continue
            return segments

    def _parse_segment(self) -> str:
        start = self.pos
        while self.pos < len(self.source) and _is_segment_char(self.source[self.pos]):
            self.pos += 1
        return self.source[start:self.pos]

    def _skip_whitespace(self):
        while self.pos < len(self.source) and self.source[self.pos] in " \t":
            self.pos += 1


@lru_cache(maxsize=1024)
def parse_template(source: str) -> Tuple[Node, ...]:
    """
    Parse a template string.

    Args:
        source: Template text

    Returns:
        Tuple of Text and Reference nodes
    """
    return _TemplateParser(source).parse()


def is_template(value: Any) -> bool:
    """True if the value is a string containing at least one reference."""
    if not isinstance(value, str) or "${" not in value:
        return False
    return any(isinstance(node, Reference) for node in parse_template(value))


def extract_references(value: Any) -> List[Reference]:
    """
    Collect every reference in a value, recursing through dicts and lists.

    Args:
        value: Literal, template string, or nested structure

    Returns:
        References in document order
    """
    if isinstance(value, str):
        if "${" not in value:
            return []
        return [node for node in parse_template(value) if isinstance(node, Reference)]
    if isinstance(value, dict):
        refs: List[Reference] = []
        for item in value.values():
            refs.extend(extract_references(item))
        return refs
    if isinstance(value, (list, tuple)):
        refs = []
        for item in value:
            refs.extend(extract_references(item))
        return refs
    return []


def stringify(value: Any) -> str:
    """Convert a resolved value to text for embedding in a larger string."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def _walk(obj: Any, segments: Tuple[str, ...]) -> Any:
    for segment in segments:
        if isinstance(obj, dict):
            if segment not in obj:
                return UNDEFINED
            obj = obj[segment]
        elif isinstance(obj, (list, tuple)):
            if not segment.isdigit() or int(segment) >= len(obj):
                return UNDEFINED
            obj = obj[int(segment)]
        else:
            return UNDEFINED
    return obj


def lookup(segments: Tuple[str, ...], context) -> Any:
    """
    Resolve a parsed path against a context.

    Args:
        segments: Path segments, first one is "input" or a step id
        context: DataFlowContext (or any object with ``inputs`` and
            ``get_step_result``)

    Returns:
        The referenced value or UNDEFINED
    """
    root, rest = segments[0], segments[1:]

    if root == INPUT_ROOT:
        return _walk(dict(context.inputs), rest)

    step = context.get_step_result(root)
    if step is None:
        return UNDEFINED
    if not rest:
        return step.result

    field, rest = rest[0], rest[1:]
    if field == "result":
        return _walk(step.result, rest)
    if rest:
        return UNDEFINED
    if field == "success":
        return step.is_success
    if field == "error":
        return step.error
    if field == "duration":
        return step.duration
    if field == "status":
        return step.status.value
    if field == "attempts":
        return step.attempts
    return UNDEFINED


def resolve_template(template: str, context) -> Any:
    """
    Resolve a single template string.

    A string that is exactly one reference returns the referenced value with
    its type preserved (or UNDEFINED). Otherwise every reference is replaced
    by its text form; unresolvable references are left as written.
    """
    if "${" not in template:
        return template

    nodes = parse_template(template)
    if len(nodes) == 1 and isinstance(nodes[0], Reference):
        return lookup(nodes[0].segments, context)

    parts = []
    for node in nodes:
        if isinstance(node, Text):
            parts.append(node.value)
            continue
        value = lookup(node.segments, context)
        parts.append(node.raw if value is UNDEFINED else stringify(value))
    return "".join(parts)


def resolve(value: Any, context) -> Any:
    """Resolve templates in a value, recursing through dicts and lists."""
    if isinstance(value, str):
        return resolve_template(value, context)
    if isinstance(value, dict):
        return {key: resolve(item, context) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [resolve(item, context) for item in value]
    return value


def evaluate_condition(condition: Any, context) -> bool:
    """
    Evaluate a step condition.

    An absent or blank condition is true. A bare step reference such as
    ``${find}`` is true when that step succeeded. Otherwise the condition is
    resolved and only boolean True or the text "true" count as true.
    """
    if condition is None:
        return True
    if isinstance(condition, bool):
        return condition
    if not isinstance(condition, str):
        return False
    if not condition.strip():
        return True

    nodes = parse_template(condition.strip())
    if len(nodes) == 1 and isinstance(nodes[0], Reference):
        reference = nodes[0]
        if len(reference.segments) == 1 and reference.root != INPUT_ROOT:
            step = context.get_step_result(reference.root)
            return step is not None and step.is_success

    value = resolve_template(condition.strip(), context)
    if value is True:
        return True
    return isinstance(value, str) and value.strip().lower() == "true"
