"""Module fetcher: local module cache first, module proxy second."""

from __future__ import annotations

import logging
from typing import Optional

from common.errors import FetchFailedError, InvalidCoordinateError
from config import Settings
from fstree import FileTree
from gomod.models import Coordinate
from registry.goproxy import GoProxyClient
from registry.modcache import ModuleCache

logger = logging.getLogger(__name__)


def is_remote_name(name: str) -> bool:
    """A module is fetchable from a proxy when its first path element is domain-like."""
    first = name.split("/", 1)[0]
    return "." in first and not name.startswith((".", "/"))


class ModuleFetcher:
    """Return browsable trees for module coordinates.

    Args:
        settings: Proxy URL, cache directory, force-refresh flag and timeout.
        proxy: Proxy client override, mostly for tests.
        cache: Module cache override, mostly for tests.
    """

    def __init__(self, settings: Settings, proxy: Optional[GoProxyClient] = None,
                 cache: Optional[ModuleCache] = None):
        self.settings = settings
        self.proxy = proxy or GoProxyClient(settings.proxy_url, timeout=settings.timeout)
        self.cache = cache or ModuleCache(settings.cache_dir)

    def resolve_version(self, name: str) -> str:
        """Return the last version the proxy lists for ``name``."""
        if not is_remote_name(name):
            raise InvalidCoordinateError(
                f"module must be a URL, built in modules are not supported: {name}"
            )
        logger.info("getting latest version of %s", name)
        versions = self.proxy.list_versions(name)
        if not versions:
            raise FetchFailedError(f"no versions of {name} available from {self.proxy.base_url}")
        version = versions[-1]
        logger.info("version of %s is %s", name, version)
        return version

    def fetch(self, coord: Coordinate) -> FileTree:
        """Return the source tree of ``coord``.

        An empty version is first resolved to the latest known version.

        Raises:
            InvalidCoordinateError: The name is not a remote module path and
                no local copy exists.
            FetchFailedError: The proxy could not deliver the archive.
        """
        if not coord.version:
            coord = Coordinate(coord.name, self.resolve_version(coord.name))

        if not self.settings.force_refresh:
            tree = self.cache.lookup(coord)
            if tree is not None:
                return tree

        if not is_remote_name(coord.name):
            raise InvalidCoordinateError(
                f"module must be a URL, built in modules are not supported: {coord.name}"
            )
        return self.proxy.download(coord)
