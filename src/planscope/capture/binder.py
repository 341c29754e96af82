# src/planscope/capture/binder.py
"""Placeholder substitution: template SQL + bind events -> literal SQL.

Pure functions, no state. Placeholders are replaced strictly left to right
by position. Anything that cannot be rendered safely stays as the
placeholder token, so the output is always a faithful (if partial) picture
of what was executed.

Supported bind-text shapes (the value runs to the closing bracket that ends
the text, so it may contain brackets itself):
    binding parameter (1:VARCHAR) <- [O'Brien]
    binding parameter [1] as [BIGINT] - [42]
    [42] INTEGER
"""

import re
from collections.abc import Sequence

import structlog

from planscope.contracts.errors import FormattingError
from planscope.contracts.events import BindEvent, BoundValue

logger = structlog.get_logger(__name__)

DEFAULT_PLACEHOLDER = "?"

STRING_TYPES: frozenset[str] = frozenset(
    {"VARCHAR", "CHAR", "NVARCHAR", "NCHAR", "LONGVARCHAR", "LONGNVARCHAR", "CLOB", "TEXT"}
)
INTEGER_TYPES: frozenset[str] = frozenset({"INTEGER", "BIGINT", "SMALLINT", "TINYINT"})

_TYPE_WORD = re.compile(r"[A-Z][A-Z0-9_]*")
_VALUE_SEGMENT = re.compile(r"\[([^\]]*)\]")

# Shape marker -> anchored value pattern. The value runs greedily to the
# final bracket, so values may themselves contain ']'.
_ANCHORED_SHAPES: tuple[tuple[re.Pattern[str], re.Pattern[str]], ...] = (
    # binding parameter (1:VARCHAR) <- [value]
    (re.compile(r"<-\s*\["), re.compile(r"<-\s*\[(.*)\]\s*$", re.DOTALL)),
    # binding parameter [1] as [VARCHAR] - [value]
    (
        re.compile(r"\bas\s*\[[^\]]*\]\s*-\s*\["),
        re.compile(r"\bas\s*\[[^\]]*\]\s*-\s*\[(.*)\]\s*$", re.DOTALL),
    ),
)
# [value] VARCHAR
_LEADING_VALUE = re.compile(r"^\s*\[(.*)\]\s*[A-Za-z][A-Za-z0-9_]*\s*$", re.DOTALL)


def count_placeholders(template: str, placeholder: str = DEFAULT_PLACEHOLDER) -> int:
    """Number of placeholder tokens in a template."""
    return template.count(placeholder)


def _match_value(text: str) -> re.Match[str]:
    for marker, pattern in _ANCHORED_SHAPES:
        if marker.search(text) is None:
            continue
        match = pattern.search(text)
        if match is None:
            raise FormattingError(f"Unexpected text after bind value: {text!r}")
        return match
    match = _LEADING_VALUE.match(text)
    if match is not None:
        return match
    segments = list(_VALUE_SEGMENT.finditer(text))
    if not segments:
        raise FormattingError(f"No bracketed value in bind text: {text!r}")
    return segments[-1]


def parse_bind_text(text: str) -> BoundValue:
    """Extract the value and type tag from a bind notification.

    Args:
        text: Raw bind notification text

    Returns:
        Typed value. declared_type is "" when no known type word is present.

    Raises:
        FormattingError: If the text has no bracketed value segment, or
            text follows the value in one of the known shapes
    """
    value_match = _match_value(text)
    outside = text[: value_match.start(1)] + " " + text[value_match.end(1) :]

    declared_type = ""
    for word in _TYPE_WORD.findall(outside):
        if word in STRING_TYPES or word in INTEGER_TYPES:
            declared_type = word
            break
    return BoundValue(raw_value=value_match.group(1), declared_type=declared_type)


def format_value(value: BoundValue) -> str:
    """Render a typed value as a SQL literal.

    Raises:
        FormattingError: If the declared type is neither a string nor an
            integer type
    """
    if value.declared_type in STRING_TYPES:
        return "'" + value.raw_value.replace("'", "''") + "'"
    if value.declared_type in INTEGER_TYPES:
        return value.raw_value
    raise FormattingError(f"Unsupported bind type {value.declared_type!r}")


def render_bind(event: BindEvent) -> str:
    """Render one bind event, preferring its typed value over the raw text.

    Raises:
        FormattingError: If the event cannot be rendered
    """
    value = event.value if event.value is not None else parse_bind_text(event.text)
    return format_value(value)


def bind_arguments(
    template: str,
    binds: Sequence[BindEvent],
    placeholder: str = DEFAULT_PLACEHOLDER,
) -> str:
    """Substitute bind events into a template by position.

    Placeholders without a bind event, or whose bind event fails to
    render, are left as the placeholder token. Surplus bind events are
    ignored.

    Example:
        >>> bind_arguments("SELECT * FROM user WHERE id = ?", [BindEvent("[42] INTEGER")])
        'SELECT * FROM user WHERE id = 42'
    """
    pieces = template.split(placeholder)
    out = [pieces[0]]
    for position, tail in enumerate(pieces[1:]):
        literal = placeholder
        if position < len(binds):
            try:
                literal = render_bind(binds[position])
            except FormattingError as e:
                logger.warning("Bind value left unresolved", position=position + 1, error=str(e))
        out.append(literal)
        out.append(tail)
    return "".join(out)
