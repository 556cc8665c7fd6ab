"""Local Go module cache lookup."""

from __future__ import annotations

import logging
import os
from typing import Optional

from constants import Constants
from fstree import DirTree
from gomod.models import Coordinate

logger = logging.getLogger(__name__)


def escape_path(path: str) -> str:
    """Case-encode a module path or version as the go command does.

    Upper-case letters become ``!`` followed by the lower-case letter so that
    cache directories and proxy URLs stay unambiguous on case-insensitive
    file systems.
    """
    return "".join(f"!{c.lower()}" if "A" <= c <= "Z" else c for c in path)


class ModuleCache:
    """Extracted module sources under ``<root>/<escaped name>@<escaped version>``."""

    def __init__(self, root: Optional[str]):
        self.root = root

    def path_for(self, coord: Coordinate) -> Optional[str]:
        if not self.root:
            return None
        dirname = f"{escape_path(coord.name)}@{escape_path(coord.version)}"
        return os.path.join(self.root, *dirname.split("/"))

    def lookup(self, coord: Coordinate) -> Optional[DirTree]:
        """Return the cached tree for ``coord`` if it is complete.

        A cache entry counts only when it is a directory holding a top-level
        go.mod.
        """
        if not coord.version:
            return None
        path = self.path_for(coord)
        if path is None or not os.path.isdir(path):
            return None
        if not os.path.isfile(os.path.join(path, Constants.MOD_FILE)):
            logger.debug("Cache entry %s has no %s, ignoring", path, Constants.MOD_FILE)
            return None
        logger.info("found module %s locally at %s", coord, path)
        return DirTree(path)
