"""Per-module source archives.

Each resolved module is written to ``<out>/[<prefix>/]<module>@<version>.zip``
with path separators in the module name replaced by ``_``. License scanning
rides along the copy: every file is read once, through the scanner's tee.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import zipfile
from typing import Iterator, List, Optional

from common.errors import FetchFailedError
from constants import Constants
from fstree import FileTree, ZipTree
from gomod.models import Coordinate
from licenses.scanner import LicenseScanner

logger = logging.getLogger(__name__)


def clean_filename(module: str, version: str, ext: str = Constants.ARCHIVE_EXT) -> str:
    """Return the archive file name for a module coordinate."""
    clean = module.replace("/", "_")
    if version:
        clean = f"{clean}@{version}"
    return f"{clean}.{ext}"


class OutputSink:
    """Destination for module archives.

    Args:
        outpath: Output directory; None disables archiving entirely.
        prefix: Optional sub-path prepended to every archive file name.
    """

    def __init__(self, outpath: Optional[str] = None, prefix: str = ""):
        self.outpath = outpath
        self.prefix = prefix or ""

    @property
    def enabled(self) -> bool:
        return bool(self.outpath)

    def relative_path(self, coord: Coordinate) -> str:
        """Archive path relative to the output directory; empty when disabled."""
        if not self.enabled:
            return ""
        filename = clean_filename(coord.name, coord.version)
        if self.prefix:
            filename = os.path.join(self.prefix, filename)
        return filename

    def full_path(self, coord: Coordinate) -> Optional[str]:
        if not self.enabled:
            return None
        return os.path.join(self.outpath, self.relative_path(coord))

    def already_written(self, coord: Coordinate) -> bool:
        """An existing non-empty archive counts as already downloaded."""
        path = self.full_path(coord)
        return bool(path) and os.path.isfile(path) and os.path.getsize(path) > 0

    def open_existing(self, coord: Coordinate) -> ZipTree:
        """Open a previously written archive as a tree.

        Raises:
            FetchFailedError: The archive cannot be read back, e.g. one left
                truncated by an interrupted run.
        """
        path = self.full_path(coord)
        try:
            return ZipTree(zipfile.ZipFile(path))
        except (OSError, zipfile.BadZipFile) as exc:
            raise FetchFailedError(f"cannot read existing archive {path}: {exc}") from exc

    @contextlib.contextmanager
    def open(self, coord: Coordinate) -> Iterator[Optional[zipfile.ZipFile]]:
        """Create the archive for ``coord`` and yield a writer.

        Yields None when archiving is disabled. The file is created only when
        this context is entered, i.e. after the module tree was obtained.

        Raises:
            FetchFailedError: The output directory or archive cannot be created.
        """
        if not self.enabled:
            yield None
            return
        path = self.full_path(coord)
        try:
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            fh = open(path, "wb")  # pylint: disable=consider-using-with
        except OSError as exc:
            raise FetchFailedError(f"cannot create archive {path}: {exc}") from exc
        with fh, zipfile.ZipFile(fh, "w") as zf:
            yield zf


def archive_tree(tree: FileTree, writer: Optional[zipfile.ZipFile],
                 scanner: LicenseScanner) -> List[str]:
    """Copy ``tree`` into ``writer`` while scanning it for licenses.

    Args:
        tree: Module sources.
        writer: Destination archive, or None to only scan.
        scanner: License scanner whose tee wraps every copied file.

    Returns:
        License identifiers found, concatenated in tree order.
    """
    if writer is None:
        return scanner.scan_tree(tree)

    licenses: List[str] = []
    for entry in tree.entries():
        if entry.is_symlink:
            logger.warning("skipping symlink %s: symlinks are not archived", entry.path)
            continue
        if entry.is_dir:
            writer.writestr(tree.zip_info(entry), b"")
            continue
        rel = tree.relative(entry.path)
        with tree.open(entry.path) as raw, scanner.wrap(raw, rel, licenses) as src, \
                writer.open(tree.zip_info(entry), "w") as dst:
            shutil.copyfileobj(src, dst)
    return licenses
