# File: crudgen/utils.py
"""
crudgen - Utility Functions & Helpers
=======================================
String transformation, import-block assembly, checksums and timing helpers
used throughout the generation pipeline.

Notes:
- String-conversion functions are decorated with ``@lru_cache(maxsize=None)``;
  the same property and class names are converted many times per pass.
- Checksums and line counts feed the export manifest.
"""

from __future__ import annotations

import builtins
import functools
import hashlib
import keyword
import logging
import re
import textwrap
import time
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Set

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")
_DOTTED_NAME_RE: re.Pattern[str] = re.compile(
    r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$"
)

# Builtins that generated parameter names must not shadow
_PYTHON_BUILTINS: FrozenSet[str] = frozenset(
    name for name in dir(builtins) if name.islower() and not name.startswith("_")
)

# Names generated method bodies bind locally
_RESERVED_LOCALS: FrozenSet[str] = frozenset({
    "self", "session", "source", "target", "data", "entity", "result",
    "context", "stmt", "configurator", "lock_mode", "entity_id",
})


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("WidgetCRUD")
        'widget_crud'
        >>> to_snake_case("OrderLineDTO")
        'order_line_dto'
        >>> to_snake_case("already_snake")
        'already_snake'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


@functools.lru_cache(maxsize=None)
def capitalize(name: str) -> str:
    """Upper-case the first character only (``orderLine`` -> ``OrderLine``)."""
    return name[:1].upper() + name[1:]


@functools.lru_cache(maxsize=None)
def decapitalize(name: str) -> str:
    """
    Lower-case the first character, JavaBeans style.

    A name whose first two characters are both upper case is returned
    unchanged, so acronyms survive:

        >>> decapitalize("FirstName")
        'firstName'
        >>> decapitalize("URL")
        'URL'
    """
    if not name:
        return name
    if len(name) > 1 and name[0].isupper() and name[1].isupper():
        return name
    return name[0].lower() + name[1:]


@functools.lru_cache(maxsize=None)
def safe_identifier(name: str) -> str:
    """
    Make *name* usable as a local/parameter name in generated code.

    Keywords, shadowed builtins and names the generated bodies bind
    themselves get a trailing underscore.
    """
    result: str = name or "_unnamed"
    if result[0].isdigit():
        result = f"_{result}"
    if (
        keyword.iskeyword(result)
        or result in _PYTHON_BUILTINS
        or result in _RESERVED_LOCALS
    ):
        result = f"{result}_"
    return result


def is_identifier(name: str) -> bool:
    return bool(name) and name.isidentifier() and not keyword.iskeyword(name)


def is_dotted_name(name: str) -> bool:
    """True for ``pkg.module.Name``-style import paths."""
    return bool(_DOTTED_NAME_RE.match(name or "")) and not any(
        keyword.iskeyword(part) for part in name.split(".")
    )


def qualify(package: str, name: str) -> str:
    """Join *package* and *name*, leaving *name* alone when the package is blank."""
    return f"{package}.{name}" if package else name


# ---------------------------------------------------------------------------
# Code formatting helpers
# ---------------------------------------------------------------------------


def make_docstring(
    text: str, indent_level: int = 1, size: int = 4, width: int = 88
) -> List[str]:
    """
    Docstring lines for generated code.

    Short single-line text stays on one line; anything longer is wrapped
    to *width* inside a triple-quote block.
    """
    prefix: str = " " * (indent_level * size)
    stripped: str = text.strip()

    if "\n" not in stripped and len(stripped) + len(prefix) + 6 <= width:
        return [f'{prefix}"""{stripped}"""']

    body: List[str] = []
    for paragraph in stripped.split("\n\n"):
        if body:
            body.append("")
        body.extend(
            textwrap.wrap(
                " ".join(paragraph.split()), width=max(width - len(prefix), 40)
            )
        )
    parts: List[str] = [f'{prefix}"""']
    parts.extend(f"{prefix}{line}" if line else "" for line in body)
    parts.append(f'{prefix}"""')
    return parts


def format_call_arguments(values: Dict[str, Any]) -> str:
    """Render ``{"max": 40, "message": "x"}`` as ``max=40, message='x'``."""
    return ", ".join(f"{key}={value!r}" for key, value in values.items())


def module_header(
    origin: str,
    summary: str,
    imports: "ImportCollector",
    exported: Sequence[str],
) -> List[str]:
    """
    Opening lines shared by every generated module: the origin comment,
    a module docstring, the ``__future__`` import, the sorted import block
    and ``__all__``.
    """
    lines: List[str] = [f"# Origin: {origin}"]
    lines.append('"""')
    lines.append(summary)
    lines.append("")
    lines.append("Generated by crudgen; changes are lost on the next generation pass.")
    lines.append('"""')
    lines.append("")
    lines.append("from __future__ import annotations")
    lines.append("")
    block: str = imports.render()
    if block:
        lines.append(block)
        lines.append("")
    lines.append(f"__all__ = [{', '.join(repr(name) for name in exported)}]")
    lines.append("")
    lines.append("")
    return lines


# ---------------------------------------------------------------------------
# File & checksum helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string. O(n)."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string. O(n)."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling generation steps.

    Usage:
        with Timer("extract models") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Import statement builder
# ---------------------------------------------------------------------------


def build_import_block(
    imports: Dict[str, Set[str]],
    modules: Iterable[str] = (),
) -> str:
    """
    Build a sorted, de-duplicated import block.

    *imports* maps module -> names for ``from`` imports; *modules* lists
    modules imported whole.  ``__future__`` is never emitted here.

    Example:
        >>> build_import_block({"typing": {"Optional", "Any"}}, ["decimal"])
        'import decimal\\nfrom typing import Any, Optional'
    """
    lines: List[str] = []
    for module in sorted(set(modules)):
        lines.append(f"import {module}")
    for module in sorted(imports.keys()):
        names: List[str] = sorted(imports[module])
        if names:
            lines.append(f"from {module} import {', '.join(names)}")
    return "\n".join(lines)


class ImportCollector:
    """Accumulates the imports one generated module needs."""

    __slots__ = ("_from", "_modules")

    def __init__(self) -> None:
        self._from: Dict[str, Set[str]] = {}
        self._modules: Set[str] = set()

    def add_from(self, module: str, *names: str) -> None:
        self._from.setdefault(module, set()).update(names)

    def add_module(self, module: str) -> None:
        if module:
            self._modules.add(module)

    @property
    def modules(self) -> FrozenSet[str]:
        return frozenset(self._modules)

    def render(self) -> str:
        return build_import_block(self._from, self._modules)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_snake_case",
    "capitalize",
    "decapitalize",
    "safe_identifier",
    "is_identifier",
    "is_dotted_name",
    "qualify",
    "make_docstring",
    "format_call_arguments",
    "module_header",
    "ensure_directory",
    "sha256_hex",
    "count_lines",
    "Timer",
    "build_import_block",
    "ImportCollector",
]

logger.debug("crudgen.utils loaded — %d public symbols.", len(__all__))
