"""
Known external library families.

A :class:`LibraryRegistry` is an immutable prefix -> :class:`LibraryInfo` table.
It is passed explicitly to everything that classifies imports, so tests and
deployments can swap in alternate registries without touching module state.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple


@dataclass(frozen=True)
class LibraryInfo:
    """Human-facing metadata for a library family."""

    url: str
    docs: str
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "docs": self.docs, "description": self.description}


@dataclass(frozen=True)
class LibraryMatch:
    prefix: str
    info: LibraryInfo


def is_relative(path: str) -> bool:
    return path.startswith("./") or path.startswith("../")


class LibraryRegistry:
    """
    Immutable prefix table with longest-prefix classification.

    Relative paths (``./`` or ``../``) are never classified: they always point
    into the project tree.
    """

    __slots__ = ("_entries", "_ordered")

    def __init__(self, entries: Mapping[str, LibraryInfo]):
        for prefix in entries:
            if not prefix or is_relative(prefix):
                raise ValueError(f"invalid library prefix: {prefix!r}")
        self._entries: Mapping[str, LibraryInfo] = MappingProxyType(dict(entries))
        # longest first so "@openzeppelin/contracts-upgradeable/" beats "@openzeppelin/"
        self._ordered: Tuple[str, ...] = tuple(sorted(self._entries, key=lambda p: (-len(p), p)))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Mapping[str, Any]]) -> "LibraryRegistry":
        """Build a registry from plain dicts (config / JSON input)."""
        entries = {
            str(prefix): LibraryInfo(
                url=str(meta.get("url", "")),
                docs=str(meta.get("docs", "")),
                description=str(meta.get("description", "")),
            )
            for prefix, meta in raw.items()
        }
        return cls(entries)

    def merged(self, other: "LibraryRegistry") -> "LibraryRegistry":
        """Return a new registry with ``other``'s entries layered over this one."""
        combined = dict(self._entries)
        combined.update(other.entries)
        return LibraryRegistry(combined)

    @property
    def entries(self) -> Mapping[str, LibraryInfo]:
        return self._entries

    @property
    def prefixes(self) -> Tuple[str, ...]:
        return self._ordered

    def classify(self, import_path: str) -> Optional[LibraryMatch]:
        if is_relative(import_path):
            return None
        for prefix in self._ordered:
            if import_path.startswith(prefix):
                return LibraryMatch(prefix=prefix, info=self._entries[prefix])
        return None

    def __contains__(self, prefix: object) -> bool:
        return prefix in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"LibraryRegistry({list(self._ordered)!r})"


DEFAULT_LIBRARIES: Mapping[str, Mapping[str, str]] = MappingProxyType(
    {
        "@openzeppelin/": {
            "url": "https://github.com/OpenZeppelin/openzeppelin-contracts",
            "docs": "https://docs.openzeppelin.com/contracts",
            "description": "OpenZeppelin Contracts is a library for secure smart contract development",
        },
        "hardhat/": {
            "url": "https://github.com/NomicFoundation/hardhat",
            "docs": "https://hardhat.org/docs",
            "description": "Hardhat is a development environment for Ethereum software",
        },
        "@chainlink/": {
            "url": "https://github.com/smartcontractkit/chainlink",
            "docs": "https://docs.chain.link",
            "description": "Chainlink is a decentralized oracle network",
        },
    }
)


def default_registry() -> LibraryRegistry:
    return LibraryRegistry.from_mapping(DEFAULT_LIBRARIES)


__all__ = [
    "LibraryInfo",
    "LibraryMatch",
    "LibraryRegistry",
    "DEFAULT_LIBRARIES",
    "default_registry",
    "is_relative",
]
