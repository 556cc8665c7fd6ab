"""Data models for Go module coordinates, manifests and resolution results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Coordinate:
    """A (name, version) pair identifying a fetchable module snapshot.

    An empty version is valid and means "unversioned/local".
    """
    name: str
    version: str = ""

    @property
    def key(self) -> str:
        """Identity key used for de-duplication and replace lookups."""
        return f"{self.name}@{self.version}"

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class Requirement:
    """A require entry of a manifest; ``indirect`` is informational only."""
    coordinate: Coordinate
    indirect: bool = False


@dataclass
class ManifestRecord:
    """Structured form of a go.mod file.

    ``replace`` keys are either full coordinate keys (``name@version``) or
    bare module names; full keys take precedence on lookup.
    """
    name: str = ""
    go_version: str = ""
    toolchain: str = ""
    requires: List[Requirement] = field(default_factory=list)
    replace: Dict[str, Coordinate] = field(default_factory=dict)

    def replacement_for(self, coord: Coordinate) -> Optional[Coordinate]:
        """Return the replacement for ``coord``, trying the full key first."""
        if coord.key in self.replace:
            return self.replace[coord.key]
        return self.replace.get(coord.name)


@dataclass(frozen=True)
class LockEntry:
    """A dependency pair taken from a go.sum line."""
    coordinate: Coordinate


@dataclass
class ResolvedModule:
    """Outcome of processing one coordinate during a walk."""
    coordinate: Coordinate
    licenses: List[str] = field(default_factory=list)
    path: str = ""

    @property
    def module(self) -> str:
        return self.coordinate.name

    @property
    def version(self) -> str:
        return self.coordinate.version

    def to_dict(self) -> Dict[str, object]:
        return {
            "module": self.module,
            "version": self.version,
            "licenses": list(self.licenses),
            "path": self.path,
        }
