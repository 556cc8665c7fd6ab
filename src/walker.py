"""Dependency walker.

Drives the fetcher, license scanner and output sink over the dependency
graph of a module. The graph is seeded either from a manifest (named module,
source directory, go.sum) or from the dependency list embedded in a Go
binary; every seed feeds the same per-node step:

1. skip coordinates already visited;
2. apply replace directives (full ``name@version`` key first, then bare
   name); a replacement without a version is a local path and is skipped;
3. fetch the module tree;
4. copy it to the output archive while scanning licenses in the same pass;
5. record the result and mark the coordinate visited;
6. in recursive mode, read the module's own go.mod and process its
   requirements depth first.

A missing go.mod below the root is tolerated (the node becomes a leaf); fetch
failures and malformed manifests abort the walk.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, List, Optional, Sequence, Set

from archive import OutputSink, archive_tree
from buildinfo import BuildInfoReader, GoToolBuildInfoReader, parse_version_from_build_flags
from common.errors import (
    BinaryReadError,
    ConfigError,
    FetchFailedError,
    InvalidCoordinateError,
    MalformedManifestError,
    NoManifestError,
)
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from fstree import DirTree, FileTree
from gitversion import go_version
from gomod.models import Coordinate, ManifestRecord, ResolvedModule
from gomod.modfile import parse_mod
from gomod.sumfile import parse_sum
from licenses.scanner import LicenseScanner
from registry.fetcher import ModuleFetcher

logger = logging.getLogger(__name__)


def read_manifest(tree: FileTree) -> ManifestRecord:
    """Parse the go.mod at the root of ``tree``.

    Raises:
        NoManifestError: The tree has no go.mod.
        MalformedManifestError: The go.mod does not parse.
    """
    try:
        fh = tree.open_module_file(Constants.MOD_FILE)
    except FileNotFoundError as exc:
        raise NoManifestError(f"no {Constants.MOD_FILE} in {tree!r}") from exc
    with fh:
        return parse_mod(fh)


class DependencyWalker:
    """Single-threaded depth-first walk over module dependencies.

    One walker owns one visited set and one ordered result list; entry
    points can be called repeatedly (``--find``) and share both.

    Args:
        fetcher: Source of module trees.
        scanner: License scanner fused with archiving.
        sink: Archive destination; a disabled sink only scans.
        recursive: Follow requirements of requirements.
        build_info_reader: Reader for binary build info.
        version_lookup: Derives a version for a source directory.
    """

    def __init__(
        self,
        fetcher: ModuleFetcher,
        scanner: LicenseScanner,
        sink: Optional[OutputSink] = None,
        recursive: bool = False,
        build_info_reader: Optional[BuildInfoReader] = None,
        version_lookup: Callable[[str], str] = go_version,
    ):
        self.fetcher = fetcher
        self.scanner = scanner
        self.sink = sink or OutputSink()
        self.recursive = recursive
        self.build_info_reader = build_info_reader or GoToolBuildInfoReader()
        self.version_lookup = version_lookup
        self.visited: Set[str] = set()
        self.results: List[ResolvedModule] = []

    # -- entry points -------------------------------------------------------

    def walk_module(self, name: str, version: str = "") -> List[ResolvedModule]:
        """Walk a named module; an empty version resolves to the latest one."""
        start = len(self.results)
        if not version:
            version = self.fetcher.resolve_version(name)
        coord = Coordinate(name, version)
        if coord.key in self.visited:
            return []
        logger.info("writing module %s version %s from direct package", name, version)
        manifest = self._process_node(coord, want_manifest=True)
        if manifest is None:
            logger.warning("module %s has no %s, not walking its requirements", coord, Constants.MOD_FILE)
        else:
            self._walk_requirements(manifest, manifest)
        return self.results[start:]

    def walk_source(self, path: str, version: str = "") -> List[ResolvedModule]:
        """Walk a module source directory; its go.mod is required."""
        start = len(self.results)
        tree = DirTree(path)
        manifest = read_manifest(tree)
        if not manifest.name:
            raise MalformedManifestError(f"{Constants.MOD_FILE} in {path} has no module line")
        if not version:
            version = self.version_lookup(path)
        coord = Coordinate(manifest.name, version)
        if coord.key in self.visited:
            return []
        logger.info("writing module from source directory %s", path)
        if self.sink.already_written(coord):
            self._record_existing(coord)
        else:
            self._record(self._archive(coord, tree))
        self._walk_requirements(manifest, manifest)
        return self.results[start:]

    def walk_lockfile(self, path: str) -> List[ResolvedModule]:
        """Walk every dependency pair of a go.sum file.

        Replace directives of a go.mod next to the go.sum are honoured.
        ``path`` may also name the directory holding the go.sum.
        """
        start = len(self.results)
        if os.path.isdir(path):
            path = os.path.join(path, Constants.SUM_FILE)
        try:
            with open(path, "rb") as fh:
                entries = parse_sum(fh)
        except FileNotFoundError as exc:
            raise NoManifestError(f"lockfile {path} not found") from exc

        sibling = os.path.join(os.path.dirname(os.path.abspath(path)), Constants.MOD_FILE)
        manifest = ManifestRecord()
        if os.path.isfile(sibling):
            with open(sibling, "rb") as fh:
                manifest = parse_mod(fh)

        logger.info("walking %d lockfile entries from %s", len(entries), path)
        for entry in entries:
            self._process_requirement(entry.coordinate, [manifest], manifest)
        return self.results[start:]

    def walk_binary(self, path: str) -> List[ResolvedModule]:
        """Walk the main module and dependencies recorded in a Go binary.

        Raises:
            BinaryReadError: ``path`` carries no Go build info.
            BuildToolMissingError: Build info cannot be read on this machine.
            ConfigError: ``path`` is a directory.
        """
        start = len(self.results)
        if os.path.isdir(path):
            raise ConfigError(f"{path} is a directory, use --find to scan it for binaries")
        info = self.build_info_reader.read(path)
        name, version = info.main.path, info.main.version

        # A version derived from build flags may not exist upstream; only a
        # version recorded by the toolchain makes a fetch failure fatal.
        calculated = False
        if version in ("", Constants.DEVEL_VERSION):
            version = parse_version_from_build_flags(info.settings)
            calculated = True

        if name and version and version != Constants.DEVEL_VERSION:
            coord = Coordinate(name, version)
            if coord.key not in self.visited:
                try:
                    self._process_node(coord, want_manifest=False)
                except (FetchFailedError, InvalidCoordinateError) as exc:
                    if not calculated:
                        raise
                    logger.warning("skipping main module %s: %s", coord, exc)
        else:
            logger.info("no version recorded for main module %s of %s, omitting it", name, path)

        for dep in info.deps:
            # the replacement is what was linked; without a version it is a local path
            linked = dep.replace or dep
            if linked.version in ("", Constants.DEVEL_VERSION):
                continue
            coord = Coordinate(linked.path, linked.version)
            if coord.key in self.visited:
                continue
            self._process_node(coord, want_manifest=False)
        return self.results[start:]

    def find_sources(self, root: str) -> List[ResolvedModule]:
        """Run walk_source for every directory under ``root`` holding a go.mod."""
        start = len(self.results)
        logger.info("find for source enabled based at %s", root)
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in (Constants.GIT_DIR, Constants.VENDOR_DIR))
            if Constants.MOD_FILE in filenames:
                self.walk_source(dirpath)
        return self.results[start:]

    def find_binaries(self, root: str) -> List[ResolvedModule]:
        """Run walk_binary for every regular file under ``root`` that is a Go binary.

        Files without build info are skipped; a missing build info tool is
        fatal since it would otherwise skip every file.
        """
        start = len(self.results)
        logger.info("find for go binaries enabled based at %s", root)
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for filename in sorted(filenames):
                full = os.path.join(dirpath, filename)
                if os.path.islink(full) or not os.path.isfile(full):
                    continue
                try:
                    self.walk_binary(full)
                except BinaryReadError as exc:
                    logger.debug("not a go binary, skipping %s: %s", full, exc)
                    continue
                logger.info("scanned binary at %s", full)
        return self.results[start:]

    # -- per-node processing ------------------------------------------------

    def _walk_requirements(self, manifest: ManifestRecord, root: ManifestRecord) -> None:
        sources = [root] if manifest is root else [root, manifest]
        for req in manifest.requires:
            self._process_requirement(req.coordinate, sources, root)

    def _process_requirement(self, coord: Coordinate, replace_sources: Sequence[ManifestRecord],
                             root: ManifestRecord) -> None:
        if coord.key in self.visited:
            return
        target = coord
        for source in replace_sources:
            replacement = source.replacement_for(coord)
            if replacement is None:
                continue
            if not replacement.version:
                logger.debug("%s replaced by local path %s, not fetching", coord, replacement.name)
                return
            target = replacement
            break
        if target.key in self.visited:
            return

        manifest = self._process_node(target, want_manifest=self.recursive)
        self.visited.add(coord.key)
        if manifest is not None and self.recursive:
            self._walk_requirements(manifest, root)

    def _process_node(self, coord: Coordinate, want_manifest: bool) -> Optional[ManifestRecord]:
        """Fetch, archive, scan and record ``coord``.

        Returns:
            The module's manifest when ``want_manifest`` is set and the module
            has one, else None.
        """
        if self.sink.already_written(coord):
            self._record_existing(coord)
            if not want_manifest:
                return None
            with self.sink.open_existing(coord) as tree:
                return self._soft_manifest(tree, coord)

        with self.fetcher.fetch(coord) as tree:
            self._record(self._archive(coord, tree))
            if not want_manifest:
                return None
            return self._soft_manifest(tree, coord)

    def _soft_manifest(self, tree: FileTree, coord: Coordinate) -> Optional[ManifestRecord]:
        try:
            return read_manifest(tree)
        except NoManifestError:
            logger.warning("failed to open mod file %s %s", coord, Constants.MOD_FILE)
            return None

    def _archive(self, coord: Coordinate, tree: FileTree) -> ResolvedModule:
        with self.sink.open(coord) as writer:
            licenses = archive_tree(tree, writer, self.scanner)
        return ResolvedModule(coord, licenses, self.sink.relative_path(coord))

    def _record_existing(self, coord: Coordinate) -> None:
        logger.info("%s already downloaded to %s, skipping", coord, self.sink.relative_path(coord))
        self._record(ResolvedModule(coord, [], self.sink.relative_path(coord)))

    def _record(self, module: ResolvedModule) -> None:
        self.results.append(module)
        self.visited.add(module.coordinate.key)
        if is_debug_enabled(logger):
            logger.debug(
                "Module resolved",
                extra=extra_context(
                    event="module_resolved",
                    component="walker",
                    target=module.coordinate.key,
                    licenses=",".join(module.licenses),
                    path=module.path or None
                )
            )
