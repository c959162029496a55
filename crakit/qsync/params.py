"""Classification of Rust types and their TypeScript equivalents."""

from __future__ import annotations

import re

__all__ = ["PRIMITIVE_TYPES", "is_primitive_type", "to_typescript_type"]

PRIMITIVE_TYPES = frozenset(
    {
        "i8", "u8", "i16", "u16", "i32", "u32", "i64", "u64", "i128", "u128",
        "isize", "usize", "f32", "f64", "bool", "char", "str", "String",
        "NaiveDateTime", "DateTime",
    }
)

_TYPESCRIPT_NAMES = {
    **{
        name: "number"
        for name in (
            "i8", "u8", "i16", "u16", "i32", "u32", "i64", "u64",
            "i128", "u128", "isize", "usize", "f32", "f64",
        )
    },
    "bool": "boolean",
    "char": "string",
    "str": "string",
    "String": "string",
    "NaiveDateTime": "Date",
    "DateTime": "Date",
}

_NON_PATH_KEYWORDS = frozenset({"dyn", "impl", "fn", "unsafe", "extern"})
_SEGMENT = re.compile(r"([A-Za-z_][A-Za-z0-9_]*)\s*(.*)", re.DOTALL)
_LIFETIME = re.compile(r"'[A-Za-z_][A-Za-z0-9_]*\s*")
_MUT = re.compile(r"mut\b\s*")

_OPENERS = "<(["
_CLOSERS = ">)]"


def is_primitive_type(ty: str) -> bool:
    """Whether ``ty`` names one of the primitive (scalar) Rust types."""
    return ty in PRIMITIVE_TYPES


def _split_top_level(text: str, separator: str) -> list[str]:
    """Split ``text`` on ``separator`` where it is not nested in brackets."""
    parts: list[str] = []
    depth = 0
    start = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS and not (ch == ">" and i > 0 and text[i - 1] == "-"):
            depth -= 1
            if depth < 0:
                raise ValueError(f"unbalanced brackets in type: {text!r}")
        elif depth == 0 and text.startswith(separator, i):
            parts.append(text[start:i])
            i += len(separator)
            start = i
            continue
        i += 1
    if depth != 0:
        raise ValueError(f"unbalanced brackets in type: {text!r}")
    parts.append(text[start:])
    return parts


def _strip_qualified_self(text: str) -> str:
    """Drop a leading ``<T as Trait>::`` qualifier from a path."""
    depth = 0
    for index, ch in enumerate(text):
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
            if depth == 0:
                rest = text[index + 1 :].lstrip()
                if not rest.startswith("::"):
                    raise ValueError(f"invalid qualified path: {text!r}")
                return rest[2:].lstrip()
    raise ValueError(f"unbalanced brackets in type: {text!r}")


def _last_segment(text: str) -> tuple[str, str] | None:
    """Return the identifier and raw arguments of a path's last segment.

    Returns None when ``text`` is not a path type at all.
    """
    if text.startswith("<"):
        text = _strip_qualified_self(text)
    if text.startswith("::"):
        text = text[2:].lstrip()
    if not text or not (text[0].isalpha() or text[0] == "_"):
        return None
    first_word = re.match(r"[A-Za-z_][A-Za-z0-9_]*", text)
    if first_word is not None and first_word.group(0) in _NON_PATH_KEYWORDS:
        return None

    segments = [part.strip() for part in _split_top_level(text, "::")]
    # A turbofish (`Vec::<T>`) puts the arguments into their own segment.
    if len(segments) > 1 and segments[-1].startswith("<"):
        segments = [*segments[:-2], segments[-2] + segments[-1]]
    last = segments[-1]
    match = _SEGMENT.fullmatch(last)
    if match is None:
        raise ValueError(f"invalid type: {text!r}")
    return match.group(1), match.group(2).strip()


def _generic_to_typescript(arguments: str) -> str:
    args = _split_top_level(arguments, ",")
    first = args[0].strip()
    if not first:
        raise ValueError("missing generic argument")
    if first.startswith("'") or first[0].isdigit() or first[0] in "{-\"":
        return "unknown"
    if len(_split_top_level(first, "=")) > 1:
        return "unknown"
    return to_typescript_type(first)


def _wrap(ident: str, arguments: str) -> str:
    if not arguments:
        return "unknown"
    if arguments.startswith("<"):
        if not arguments.endswith(">"):
            raise ValueError(f"invalid generic arguments: {arguments!r}")
        inner = _generic_to_typescript(arguments[1:-1])
        return f"{inner} | undefined" if ident == "Option" else f"Array<{inner}>"
    if arguments.startswith("("):
        return arguments
    raise ValueError(f"invalid type arguments: {arguments!r}")


def to_typescript_type(ty: str) -> str:
    """The TypeScript type for the Rust type written as ``ty``.

    References are looked through, ``Option<T>`` becomes ``T | undefined``,
    ``Vec<T>`` becomes ``Array<T>``, other named types keep their last path
    segment, and anything that is not a path (tuples, slices, pointers,
    trait objects) is ``unknown``.
    """
    text = ty.strip()
    if not text:
        raise ValueError("empty type")

    if text.startswith("&"):
        rest = text[1:].lstrip()
        lifetime = _LIFETIME.match(rest)
        if lifetime is not None:
            rest = rest[lifetime.end() :]
        mutable = _MUT.match(rest)
        if mutable is not None:
            rest = rest[mutable.end() :]
        return to_typescript_type(rest)

    segment = _last_segment(text)
    if segment is None:
        return "unknown"
    ident, arguments = segment

    if ident in ("Option", "Vec"):
        return _wrap(ident, arguments)
    return _TYPESCRIPT_NAMES.get(ident, ident)