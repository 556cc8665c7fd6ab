"""Go module manifest (go.mod) and lockfile (go.sum) support.

- models.py: coordinates, requirements and manifest records
- modfile.py: go.mod parser and serializer
- sumfile.py: go.sum parser
"""

from .models import Coordinate, Requirement, ManifestRecord, LockEntry, ResolvedModule
from .modfile import parse_mod, format_mod
from .sumfile import parse_sum

__all__ = [
    "Coordinate",
    "Requirement",
    "ManifestRecord",
    "LockEntry",
    "ResolvedModule",
    "parse_mod",
    "format_mod",
    "parse_sum",
]
