"""Binding helpers: value cleaning, placeholder compilation, literal rendering."""

from __future__ import annotations

import datetime
import re
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any, Union

from src.db.errors import QueryError

Bindings = Union[Mapping[str, Any], Sequence[Any]]

# Characters removed by PHP's trim(); str.strip() would remove more
_TRIM_CHARS = " \t\n\r\0\x0b"

# Literals, quoted identifiers and comments are copied through untouched
_TOKEN_RE = re.compile(
    r"""
      '(?:[^'\\]|\\.|'')*'
    | "(?:[^"\\]|\\.|"")*"
    | `(?:[^`]|``)*`
    | /\*.*?\*/
    | (?:\#|--[ \t])[^\n]*
    | (?<!:):(?P<name>[A-Za-z_][A-Za-z0-9_]*)
    | (?P<positional>\?)
    """,
    re.VERBOSE | re.DOTALL,
)

_ESCAPES = str.maketrans(
    {
        "\0": "\\0",
        "\n": "\\n",
        "\r": "\\r",
        "\\": "\\\\",
        "'": "\\'",
        '"': '\\"',
        "\x1a": "\\Z",
    }
)


def sanitize_value(element: Any) -> Any:
    """Double backticks and trim whitespace on strings; anything else is returned as-is."""
    if not isinstance(element, str):
        return element
    return element.replace("`", "``").strip(_TRIM_CHARS)


def sanitize_bindings(bindings: Bindings | None) -> Bindings | None:
    """Apply :func:`sanitize_value` to every bound value."""
    if bindings is None or isinstance(bindings, (str, bytes)):
        return bindings
    if isinstance(bindings, Mapping):
        return {key: sanitize_value(value) for key, value in bindings.items()}
    return [sanitize_value(value) for value in bindings]


def compile_query(query: str, bindings: Bindings | None) -> tuple[str, tuple[Any, ...]]:
    """Rewrite ``:name`` placeholders to ``?`` markers for a server-side prepare.

    Returns the rewritten SQL and the values in marker order. Named
    bindings may be keyed with or without the leading colon; a name used
    more than once is bound once per occurrence. Sequence bindings are
    matched against ``?`` markers already present in the query.

    Raises:
        QueryError: a placeholder has no binding, a binding is never used,
            or the positional count does not match.
    """
    if bindings is None:
        return query, ()
    if isinstance(bindings, (str, bytes)):
        raise QueryError("Bindings must be a mapping or a sequence of values")

    if isinstance(bindings, Mapping):
        named = {str(key).lstrip(":"): value for key, value in bindings.items()}
        values: list[Any] = []
        used: set[str] = set()

        def _replace(match: re.Match[str]) -> str:
            name = match.group("name")
            if name is None:
                if match.group("positional"):
                    raise QueryError("Cannot mix positional markers with named bindings")
                return match.group(0)
            if name not in named:
                raise QueryError(f"No binding supplied for :{name}")
            used.add(name)
            values.append(named[name])
            return "?"

        sql = _TOKEN_RE.sub(_replace, query)
        unused = sorted(set(named) - used)
        if unused:
            raise QueryError(
                "Bindings not used by query: " + ", ".join(f":{name}" for name in unused)
            )
        return sql, tuple(values)

    markers = sum(1 for match in _TOKEN_RE.finditer(query) if match.group("positional"))
    if any(match.group("name") for match in _TOKEN_RE.finditer(query)):
        raise QueryError("Named placeholders require a mapping of bindings")
    if markers != len(bindings):
        raise QueryError(
            f"Query has {markers} positional markers but {len(bindings)} values were bound"
        )
    return query, tuple(bindings)


def quote_literal(value: Any) -> str:
    """Render a value as a MySQL literal, for display only."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return "X'" + bytes(value).hex().upper() + "'"
    if isinstance(value, datetime.datetime):
        return "'" + value.isoformat(sep=" ") + "'"
    if isinstance(value, (datetime.date, datetime.time)):
        return "'" + value.isoformat() + "'"
    return "'" + str(value).translate(_ESCAPES) + "'"


def interpolate(query: str, bindings: Bindings | None) -> str:
    """Inline bound values into the query text.

    Each mapping key is replaced verbatim with ``str.replace``, so a key that
    prefixes another (``:id`` / ``:identifier``) also rewrites the longer one.
    Sequence values replace ``?`` markers left to right, skipping markers
    inside quoted literals and comments as :func:`compile_query` does.
    """
    if bindings is None:
        return query
    if isinstance(bindings, Mapping):
        for key, value in bindings.items():
            query = query.replace(str(key), quote_literal(value))
        return query

    literals = iter([quote_literal(value) for value in bindings])

    def _replace(match: re.Match[str]) -> str:
        if match.group("positional"):
            return next(literals, "?")
        return match.group(0)

    return _TOKEN_RE.sub(_replace, query)
