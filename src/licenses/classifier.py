"""License text classification.

The scanner talks to any object implementing ``LicenseClassifier``: given the
full bytes of a license file it reports a coverage percentage and the
license identifiers it recognised. ``AnchorPhraseClassifier`` is the default
implementation; it looks for phrases that only occur in one license text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Protocol, Tuple


@dataclass(frozen=True)
class LicenseMatch:
    """One license recognised in a file, with its span in the normalized text."""
    id: str
    start: int = 0
    end: int = 0


@dataclass
class Coverage:
    """Classification result for one file."""
    percent: float
    matches: List[LicenseMatch] = field(default_factory=list)


class LicenseClassifier(Protocol):  # pylint: disable=too-few-public-methods
    """Oracle classifying license text."""

    def scan(self, data: bytes) -> Coverage:
        """Classify ``data`` and report coverage and matches."""


@dataclass(frozen=True)
class LicensePattern:
    """Distinctive phrases of a license; all anchors must occur, no exclude may."""
    id: str
    anchors: Tuple[str, ...]
    excludes: Tuple[str, ...] = ()


_BSD_REDISTRIBUTION = "redistribution and use in source and binary forms, with or without modification"

DEFAULT_PATTERNS: Tuple[LicensePattern, ...] = (
    LicensePattern("MIT", (
        "permission is hereby granted, free of charge, to any person obtaining a copy",
        "the software is provided as is, without warranty of any kind",
    )),
    LicensePattern("BSL-1.0", (
        "boost software license",
        "permission is hereby granted, free of charge, to any person or organization obtaining a copy",
    )),
    LicensePattern("Apache-2.0", (
        "apache license",
        "version 2.0, january 2004",
    )),
    LicensePattern("BSD-4-Clause", (
        _BSD_REDISTRIBUTION,
        "all advertising materials mentioning features or use of this software",
    )),
    LicensePattern("BSD-3-Clause", (
        _BSD_REDISTRIBUTION,
        "neither the name of",
    ), excludes=("all advertising materials mentioning",)),
    LicensePattern("BSD-2-Clause", (
        _BSD_REDISTRIBUTION,
        "redistributions in binary form must reproduce the above copyright notice",
    ), excludes=("neither the name of", "all advertising materials mentioning")),
    LicensePattern("ISC", (
        "permission to use, copy, modify",
        "the software is provided as is and the author disclaims all warranties",
    )),
    LicensePattern("MPL-2.0", (
        "mozilla public license",
        "v. 2.0",
    )),
    LicensePattern("GPL-2.0", ("gnu general public license version 2, june 1991",)),
    LicensePattern("GPL-3.0", ("gnu general public license version 3, 29 june 2007",)),
    LicensePattern("LGPL-2.1", ("gnu lesser general public license version 2.1, february 1999",)),
    LicensePattern("LGPL-3.0", ("gnu lesser general public license version 3, 29 june 2007",)),
    LicensePattern("AGPL-3.0", ("gnu affero general public license version 3, 19 november 2007",)),
    LicensePattern("EPL-2.0", ("eclipse public license - v 2.0",)),
    LicensePattern("Unlicense", (
        "this is free and unencumbered software released into the public domain",
    )),
    LicensePattern("CC0-1.0", ("cc0 1.0 universal",)),
    LicensePattern("Zlib", (
        "this software is provided as-is, without any express or implied warranty",
        "altered source versions must be plainly marked as such",
    )),
)

_STRIP_RE = re.compile(r"[\"'`*#>_]|“|”|‘|’")
_SPACE_RE = re.compile(r"\s+")


def normalize_text(data: bytes) -> str:
    """Lowercase, drop quoting/markup characters and collapse whitespace."""
    text = data.decode("utf-8", errors="ignore").lower()
    text = _STRIP_RE.sub("", text)
    return _SPACE_RE.sub(" ", text).strip()


class AnchorPhraseClassifier:
    """Default classifier matching per-license anchor phrases.

    Coverage is the share of the best candidate's anchors found in the text,
    so a complete license text scores 100 and unrelated text scores 0.
    """

    def __init__(self, patterns: Iterable[LicensePattern] = DEFAULT_PATTERNS):
        self.patterns = tuple(patterns)

    def scan(self, data: bytes) -> Coverage:
        text = normalize_text(data)
        best = 0.0
        matches: List[LicenseMatch] = []
        for pattern in self.patterns:
            if not pattern.anchors or any(ex in text for ex in pattern.excludes):
                continue
            positions = [(text.find(a), len(a)) for a in pattern.anchors]
            found = [(pos, size) for pos, size in positions if pos >= 0]
            best = max(best, len(found) / len(pattern.anchors))
            if len(found) == len(pattern.anchors):
                start = min(pos for pos, _ in found)
                end = max(pos + size for pos, size in found)
                matches.append(LicenseMatch(pattern.id, start, end))
        matches.sort(key=lambda m: (m.start, m.id))
        return Coverage(percent=best * 100.0, matches=matches)
