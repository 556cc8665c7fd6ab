"""Browsable file trees for module sources.

Two variants share one capability (enumerate entries, open an entry, stat an
entry): ``DirTree`` over a directory on disk and ``ZipTree`` over an
in-memory or on-disk zip archive. Callers depend only on ``FileTree``.
"""

from __future__ import annotations

import logging
import os
import stat
import time
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import IO, Dict, Iterator, Optional, Tuple

from constants import Constants

logger = logging.getLogger(__name__)

_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


@dataclass(frozen=True)
class TreeEntry:
    """Metadata of one file or directory inside a tree."""
    path: str
    is_dir: bool
    size: int = 0
    mode: int = 0
    date_time: Tuple[int, int, int, int, int, int] = _ZIP_EPOCH
    is_symlink: bool = False

    @property
    def name(self) -> str:
        return self.path.rstrip("/").rsplit("/", 1)[-1]


class FileTree(ABC):
    """Read-only view of a module's source files.

    Entry paths are POSIX style. ``root_prefix`` is the directory inside the
    tree that holds the module root (e.g. ``name@version/`` in proxy zips).
    """

    root_prefix = ""

    @abstractmethod
    def entries(self) -> Iterator[TreeEntry]:
        """Yield every entry in a stable order."""

    @abstractmethod
    def open(self, path: str) -> IO[bytes]:
        """Open the file at ``path`` for binary reading.

        Raises:
            FileNotFoundError: When no such file exists in the tree.
        """

    @abstractmethod
    def stat(self, path: str) -> TreeEntry:
        """Return metadata for ``path``; raises FileNotFoundError if absent."""

    @abstractmethod
    def zip_info(self, entry: TreeEntry) -> zipfile.ZipInfo:
        """Build a fresh zip header for archiving ``entry``."""

    def module_path(self, rel: str) -> str:
        return f"{self.root_prefix}{rel}"

    def relative(self, path: str) -> str:
        """Strip ``root_prefix`` from an entry path."""
        if self.root_prefix and path.startswith(self.root_prefix):
            return path[len(self.root_prefix):]
        return path

    def open_module_file(self, rel: str) -> IO[bytes]:
        """Open a file relative to the module root."""
        return self.open(self.module_path(rel))

    def has_module_file(self, rel: str) -> bool:
        try:
            return not self.stat(self.module_path(rel)).is_dir
        except FileNotFoundError:
            return False

    def close(self) -> None:
        """Release any resource held by the tree."""

    def __enter__(self) -> "FileTree":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _date_time(mtime: float) -> Tuple[int, int, int, int, int, int]:
    dt = time.localtime(mtime)[:6]
    return dt if dt[0] >= 1980 else _ZIP_EPOCH


class DirTree(FileTree):
    """File tree backed by a directory; the .git directory is never listed."""

    def __init__(self, root: str):
        self.root = os.path.abspath(root)

    def __repr__(self) -> str:
        return f"DirTree({self.root!r})"

    def _full(self, path: str) -> str:
        rel = path.rstrip("/")
        full = os.path.normpath(os.path.join(self.root, *rel.split("/")))
        if full != self.root and not full.startswith(self.root + os.sep):
            raise FileNotFoundError(path)
        return full

    def _entry(self, rel: str, full: str) -> TreeEntry:
        st = os.lstat(full)
        is_link = stat.S_ISLNK(st.st_mode)
        is_dir = stat.S_ISDIR(st.st_mode)
        return TreeEntry(
            path=rel + "/" if is_dir else rel,
            is_dir=is_dir,
            size=0 if is_dir else st.st_size,
            mode=st.st_mode,
            date_time=_date_time(st.st_mtime),
            is_symlink=is_link,
        )

    def entries(self) -> Iterator[TreeEntry]:
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames.sort()
            rel_dir = os.path.relpath(dirpath, self.root)
            rel_dir = "" if rel_dir == "." else rel_dir.replace(os.sep, "/") + "/"
            if rel_dir:
                yield self._entry(rel_dir.rstrip("/"), dirpath)
            kept = []
            for d in dirnames:
                if not rel_dir and d == Constants.GIT_DIR:
                    continue
                full = os.path.join(dirpath, d)
                if os.path.islink(full):
                    yield self._entry(rel_dir + d, full)
                    continue
                kept.append(d)
            dirnames[:] = kept
            for f in sorted(filenames):
                if not rel_dir and f == Constants.GIT_DIR:
                    continue
                yield self._entry(rel_dir + f, os.path.join(dirpath, f))

    def open(self, path: str) -> IO[bytes]:
        full = self._full(path)
        if os.path.isdir(full):
            raise FileNotFoundError(f"{path} is a directory")
        return open(full, "rb")  # pylint: disable=consider-using-with

    def stat(self, path: str) -> TreeEntry:
        full = self._full(path)
        if not os.path.lexists(full):
            raise FileNotFoundError(path)
        return self._entry(path.rstrip("/"), full)

    def zip_info(self, entry: TreeEntry) -> zipfile.ZipInfo:
        info = zipfile.ZipInfo(entry.path, date_time=entry.date_time)
        info.external_attr = (entry.mode & 0xFFFF) << 16
        if entry.is_dir:
            info.external_attr |= 0x10
        else:
            info.compress_type = zipfile.ZIP_DEFLATED
            info.file_size = entry.size
        return info


class ZipTree(FileTree):
    """File tree backed by a zip archive.

    Args:
        archive: An open ZipFile.
        root_prefix: Directory holding the module root. When omitted it is
            inferred from a ``name@version/`` directory shared by every
            entry, else from a single shared top-level directory.
        owns_archive: Close ``archive`` together with the tree.
    """

    def __init__(self, archive: zipfile.ZipFile, root_prefix: Optional[str] = None,
                 owns_archive: bool = True):
        self.archive = archive
        self._owns = owns_archive
        self._infos: Dict[str, zipfile.ZipInfo] = {
            info.filename: info for info in archive.infolist()
        }
        self.root_prefix = self._infer_root() if root_prefix is None else root_prefix

    def __repr__(self) -> str:
        return f"ZipTree({self.archive.filename or '<memory>'!r}, root={self.root_prefix!r})"

    def _infer_root(self) -> str:
        names = [n for n in self._infos if n]
        if not names:
            return ""
        # module zips nest everything under "<module path>@<version>/"
        first = names[0]
        at = first.find("@")
        slash = first.find("/", at) if at >= 0 else -1
        if slash >= 0:
            candidate = first[:slash + 1]
            if all(n.startswith(candidate) for n in names):
                return candidate
        top = first.split("/", 1)[0]
        if all(n.startswith(top + "/") for n in names):
            return top + "/"
        return ""

    @staticmethod
    def _entry(info: zipfile.ZipInfo) -> TreeEntry:
        mode = info.external_attr >> 16
        return TreeEntry(
            path=info.filename,
            is_dir=info.is_dir(),
            size=info.file_size,
            mode=mode,
            date_time=info.date_time,
            is_symlink=stat.S_ISLNK(mode),
        )

    def entries(self) -> Iterator[TreeEntry]:
        for info in self.archive.infolist():
            yield self._entry(info)

    def open(self, path: str) -> IO[bytes]:
        info = self._infos.get(path)
        if info is None or info.is_dir():
            raise FileNotFoundError(path)
        return self.archive.open(info)

    def stat(self, path: str) -> TreeEntry:
        info = self._infos.get(path) or self._infos.get(path.rstrip("/") + "/")
        if info is None:
            raise FileNotFoundError(path)
        return self._entry(info)

    def zip_info(self, entry: TreeEntry) -> zipfile.ZipInfo:
        src = self._infos[entry.path]
        info = zipfile.ZipInfo(src.filename, date_time=src.date_time)
        info.external_attr = src.external_attr
        info.compress_type = zipfile.ZIP_STORED if src.is_dir() else zipfile.ZIP_DEFLATED
        info.comment = src.comment
        info.file_size = src.file_size
        return info

    def close(self) -> None:
        if self._owns:
            self.archive.close()
