"""Minimal mustache-style resolver.

Supported tags:
  {{field}}                 substitution (values are inserted verbatim)
  {{#field}}...{{/field}}   kept when field is truthy
  {{^field}}...{{/field}}   kept when field is falsy
  {{/^field}}               accepted as a closing tag for inverted blocks

The template is tokenized once and blocks are matched with a stack, so
nested and adjacent blocks on the same field never interfere. Unknown
fields render as empty; unmatched open/close markers are dropped while the
text between them is kept.

Context values are str, bool, or list[str]. A list substitutes as its
items joined by newlines; it is truthy when non-empty.
"""

import re
from dataclasses import dataclass, field
from typing import Union

_TAG_RE = re.compile(r"\{\{\s*(#|\^|/\^|/)?\s*([\w.-]+)\s*\}\}")

ContextValue = Union[str, bool, list[str], None]


@dataclass
class _Text:
    text: str


@dataclass
class _Var:
    name: str


@dataclass
class _Section:
    name: str
    inverted: bool
    children: list["_Node"] = field(default_factory=list)


_Node = Union[_Text, _Var, _Section]


def is_truthy(value: ContextValue) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)


def _as_text(value: ContextValue) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, list):
        return "\n".join(value)
    return value


def parse_template(template: str) -> list[_Node]:
    """Tokenize a template into a node tree."""
    root: list[_Node] = []
    stack: list[_Section] = []

    def current() -> list[_Node]:
        return stack[-1].children if stack else root

    def close_into_parent(section: _Section, matched: bool) -> None:
        if matched:
            current().append(section)
        else:
            # Unclosed block: drop its marker, keep its contents in place.
            current().extend(section.children)

    pos = 0
    for m in _TAG_RE.finditer(template):
        if m.start() > pos:
            current().append(_Text(template[pos : m.start()]))
        pos = m.end()
        sigil, name = m.group(1), m.group(2)

        if sigil in ("#", "^"):
            stack.append(_Section(name, inverted=sigil == "^"))
        elif sigil in ("/", "/^"):
            if not any(s.name == name for s in stack):
                continue  # stray closing marker
            while stack:
                section = stack.pop()
                if section.name == name:
                    close_into_parent(section, matched=True)
                    break
                close_into_parent(section, matched=False)
        else:
            current().append(_Var(name))

    if pos < len(template):
        current().append(_Text(template[pos:]))
    while stack:
        close_into_parent(stack.pop(), matched=False)
    return root


def _render_nodes(nodes: list[_Node], context: dict[str, ContextValue], out: list[str]) -> None:
    for node in nodes:
        if isinstance(node, _Text):
            out.append(node.text)
        elif isinstance(node, _Var):
            out.append(_as_text(context.get(node.name)))
        elif is_truthy(context.get(node.name)) != node.inverted:
            _render_nodes(node.children, context, out)


def render_template(template: str, context: dict[str, ContextValue]) -> str:
    """Resolve every tag in one pass. Pure: same inputs give the same output."""
    out: list[str] = []
    _render_nodes(parse_template(template), context, out)
    return "".join(out)
