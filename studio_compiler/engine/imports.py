"""
Solidity import parsing.

Pure functions over source text:

- ``get_imports_for`` returns the import paths of a unit in source order.
- ``extract_contract_names`` lists declared contracts/libraries/interfaces.
- ``analyze_imports`` splits imports into internal/external and derives
  library version hints from usage patterns.

Comments are blanked before scanning so commented-out imports are ignored;
string literals are left intact.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from .libraries import LibraryRegistry, is_relative

# Matches, across newlines:
#   import "p";            import 'p';
#   import "p" as X;       import * as X from "p";
#   import {A, B as C} from "p";
_IMPORT_RE = re.compile(
    r"""
    \bimport\s+
    (?:(?:\{[^}]*\}|\*\s*as\s+[\w$]+)\s*from\s+)?
    (?P<quote>["'])(?P<path>[^"'\n]+)(?P=quote)
    (?:\s+as\s+[\w$]+)?
    \s*;
    """,
    re.VERBOSE,
)

_STRING_OR_COMMENT_RE = re.compile(
    r"""
    "(?:\\.|[^"\\\n])*"
    | '(?:\\.|[^'\\\n])*'
    | //[^\n]*
    | /\*.*?\*/
    """,
    re.VERBOSE | re.DOTALL,
)

_DECLARATION_RE = re.compile(
    r"\b(?:abstract\s+)?(?:contract|library|interface)\s+([A-Za-z_$][\w$]*)"
)

# Ownable(initialOwner) only compiles against the 5.x access-control line
_OWNABLE_WITH_ARG_RE = re.compile(r"Ownable\s*\(\s*[^)\s]+\s*\)")

ACCESS_CONTROL_PREFIX = "@openzeppelin/"


def strip_comments(content: str) -> str:
    def _blank(m: "re.Match[str]") -> str:
        text = m.group(0)
        if text[0] in "\"'":
            return text
        # keep line structure for anything reporting positions later
        return "\n" * text.count("\n") or " "

    return _STRING_OR_COMMENT_RE.sub(_blank, content)


def parse_imports(content: str) -> List[str]:
    if not content:
        return []
    return [m.group("path") for m in _IMPORT_RE.finditer(strip_comments(content))]


def get_imports_for(source: Union[str, Any]) -> List[str]:
    """
    Return the raw import paths of ``source``.

    ``source`` is either the text itself or a file record with a ``content``
    attribute (folders and empty files yield ``[]``).
    """
    if isinstance(source, str):
        return parse_imports(source)
    return parse_imports(getattr(source, "content", None) or "")


def extract_contract_names(content: str) -> List[str]:
    if not content:
        return []
    return _DECLARATION_RE.findall(strip_comments(content))


@dataclass
class ImportAnalysis:
    internal: List[str] = field(default_factory=list)
    external: Dict[str, List[str]] = field(default_factory=dict)
    required_versions: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


def analyze_imports(content: str, registry: LibraryRegistry) -> ImportAnalysis:
    """
    Classify every import of ``content`` and report library version hints.

    The access-control library changed its ``Ownable`` constructor between
    the 4.x and 5.x lines, so a call with an argument pins 5.x.
    """
    result = ImportAnalysis()
    needs_v5 = bool(_OWNABLE_WITH_ARG_RE.search(content or ""))

    if needs_v5:
        result.required_versions[ACCESS_CONTROL_PREFIX] = "5.0+"
        result.warnings.append("Contract uses Ownable with parameter, requiring OpenZeppelin v5.0+")

    for path in get_imports_for(content):
        if is_relative(path):
            result.internal.append(path)
            continue
        match = registry.classify(path)
        if match is None:
            result.internal.append(path)
            continue
        result.external.setdefault(match.prefix, []).append(path)
        if match.prefix == ACCESS_CONTROL_PREFIX and match.prefix not in result.required_versions:
            result.required_versions[match.prefix] = "5.0+" if needs_v5 else "4.x"

    oz_imports = result.external.get(ACCESS_CONTROL_PREFIX, [])
    if "Ownable" in (content or "") and any("Ownable.sol" in p for p in oz_imports):
        if not needs_v5 and "Ownable()" in content:
            result.warnings.append("Contract uses Ownable without parameters. Compatible with OpenZeppelin v4.x.")

    return result


__all__ = [
    "ACCESS_CONTROL_PREFIX",
    "ImportAnalysis",
    "analyze_imports",
    "extract_contract_names",
    "get_imports_for",
    "parse_imports",
    "strip_comments",
]
