"""Lockfile parser for go.sum.

go.sum carries two lines per dependency: one hashing the source archive
(``name version h1:...``) and one hashing only the module's go.mod
(``name version/go.mod h1:...``). Only the former names a dependency pair.
"""

from __future__ import annotations

import io
import logging
from typing import IO, List, Union

from constants import Constants
from gomod.models import Coordinate, LockEntry

logger = logging.getLogger(__name__)


def parse_sum(source: Union[str, bytes, IO[str], IO[bytes]]) -> List[LockEntry]:
    """Extract dependency pairs from go.sum content.

    Lines that do not have exactly three whitespace-separated fields are
    skipped, as are mod-hash lines. This function never raises on content.

    Args:
        source: go.sum text, bytes, or an open text/binary stream.

    Returns:
        List of LockEntry in file order.
    """
    if isinstance(source, bytes):
        source = source.decode("utf-8", errors="replace")
    if isinstance(source, str):
        source = io.StringIO(source)

    entries: List[LockEntry] = []
    skipped = 0
    for raw in source:
        line = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        parts = line.split()
        if len(parts) != 3:
            continue
        if parts[1].endswith(Constants.MOD_HASH_SUFFIX):
            skipped += 1
            continue
        entries.append(LockEntry(Coordinate(parts[0], parts[1])))

    logger.debug("go.sum parsed: %d entries, %d mod-hash lines dropped", len(entries), skipped)
    return entries
