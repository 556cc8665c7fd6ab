"""Client for the Go module proxy protocol.

Two read-only endpoints are used:

* ``<proxy>/<module>/@v/list``: newline-delimited versions, latest last;
* ``<proxy>/<module>/@v/<version>.zip``: the module source archive.
"""

from __future__ import annotations

import io
import logging
import zipfile
from typing import List, Optional

from common.errors import FetchFailedError
from common.http_client import safe_get
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from fstree import ZipTree
from gomod.models import Coordinate
from registry.modcache import escape_path

logger = logging.getLogger(__name__)


class GoProxyClient:
    """HTTP access to one module proxy.

    Args:
        base_url: Proxy root, e.g. https://proxy.golang.org.
        timeout: Request timeout in seconds; None keeps the transport default.
    """

    def __init__(self, base_url: str = Constants.DEFAULT_PROXY_URL,
                 timeout: Optional[float] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def list_url(self, name: str) -> str:
        return f"{self.base_url}/{escape_path(name)}/@v/list"

    def zip_url(self, coord: Coordinate) -> str:
        return f"{self.base_url}/{escape_path(coord.name)}/@v/{escape_path(coord.version)}.zip"

    def list_versions(self, name: str) -> List[str]:
        """Return the versions the proxy knows for ``name``, in proxy order."""
        res = safe_get(self.list_url(name), context="goproxy", timeout=self.timeout)
        if res.status_code != 200:
            raise FetchFailedError(
                f"failed to list versions of {name}: HTTP {res.status_code}"
            )
        versions = [line.strip() for line in res.text.splitlines() if line.strip()]
        if is_debug_enabled(logger):
            logger.debug(
                "Version list received",
                extra=extra_context(
                    event="version_list",
                    component="goproxy",
                    target=name,
                    count=len(versions)
                )
            )
        return versions

    def download(self, coord: Coordinate) -> ZipTree:
        """Download the source zip of ``coord`` and wrap it as a tree.

        Raises:
            FetchFailedError: On transport errors, non-200 responses or a
                payload that is not a zip archive.
        """
        res = safe_get(self.zip_url(coord), context="goproxy", timeout=self.timeout)
        if res.status_code != 200:
            raise FetchFailedError(
                f"failed to get module zip for {coord}: HTTP {res.status_code}"
            )
        try:
            archive = zipfile.ZipFile(io.BytesIO(res.content))
        except zipfile.BadZipFile as exc:
            raise FetchFailedError(f"invalid module zip for {coord}: {exc}") from exc
        logger.info("found module %s via proxy", coord)
        return ZipTree(archive, root_prefix=f"{coord.name}@{coord.version}/")
