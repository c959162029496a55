"""Name conversions used when generating query hooks."""

from __future__ import annotations

import os
import re
from pathlib import PurePath

__all__ = ["to_pascal_case", "file_path_to_vec_string"]

_WORD = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z0-9]+|[0-9]+")


def to_pascal_case(text: str) -> str:
    """Convert ``text`` to PascalCase, dropping every non-alphanumeric character."""
    return "".join(word[0].upper() + word[1:].lower() for word in _WORD.findall(text))


def file_path_to_vec_string(input_path: str | os.PathLike[str]) -> list[str]:
    """Split a file path into PascalCase components.

    ``/home/user/path/to/file.rs`` gives ``["", "Home", "User", "Path",
    "To", "File"]``; trailing ``.rs`` extensions are removed.
    """
    components: list[str] = []
    for part in PurePath(input_path).parts:
        while part.endswith(".rs"):
            part = part[: -len(".rs")]
        components.append(to_pascal_case(part))
    return components