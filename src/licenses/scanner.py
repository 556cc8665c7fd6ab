"""License scanner for module source trees.

Candidate files are recognised by their base name (the conventional license
file names used by pkg.go.dev) and must not live below a ``vendor``
directory. Scanning can be fused with copying: ``LicenseScanner.wrap``
returns a tee reader that hands bytes through to whoever consumes the stream
and classifies the buffered content when the reader is closed.
"""

from __future__ import annotations

import io
import logging
from typing import IO, List, Optional

from constants import Constants
from fstree import FileTree
from licenses.classifier import AnchorPhraseClassifier, LicenseClassifier

logger = logging.getLogger(__name__)

LICENSE_FILE_NAMES = frozenset([
    "COPYING",
    "COPYING.md",
    "COPYING.markdown",
    "COPYING.txt",
    "LICENCE",
    "LICENCE.md",
    "LICENCE.markdown",
    "LICENCE.txt",
    "LICENSE",
    "LICENSE.md",
    "LICENSE.markdown",
    "LICENSE.txt",
    "LICENSE-2.0.txt",
    "LICENCE-2.0.txt",
    "LICENSE-APACHE",
    "LICENCE-APACHE",
    "LICENSE-APACHE-2.0.txt",
    "LICENCE-APACHE-2.0.txt",
    "LICENSE-MIT",
    "LICENCE-MIT",
    "LICENSE.MIT",
    "LICENCE.MIT",
    "LICENSE.code",
    "LICENCE.code",
    "LICENSE.docs",
    "LICENCE.docs",
    "LICENSE.rst",
    "LICENCE.rst",
    "MIT-LICENSE",
    "MIT-LICENCE",
    "MIT-LICENSE.md",
    "MIT-LICENCE.md",
    "MIT-LICENSE.markdown",
    "MIT-LICENCE.markdown",
    "MIT-LICENSE.txt",
    "MIT-LICENCE.txt",
    "MIT_LICENSE",
    "MIT_LICENCE",
    "UNLICENSE",
    "UNLICENCE",
])


def is_license_candidate(path: str) -> bool:
    """Return True if ``path`` (relative to the module root) is a license file to classify."""
    parts = path.rstrip("/").split("/")
    if parts[-1] not in LICENSE_FILE_NAMES:
        return False
    return Constants.VENDOR_DIR not in parts[:-1]


class LicenseReader:
    """Tee over a binary stream.

    Every chunk read is also kept in a buffer; ``close()`` classifies the
    buffer once and appends the identifiers to ``sink``.
    """

    def __init__(self, stream: IO[bytes], path: str, scanner: "LicenseScanner",
                 sink: List[str]):
        self._stream = stream
        self._buf = io.BytesIO()
        self._scanner = scanner
        self._sink = sink
        self.path = path
        self.closed = False

    def read(self, size: int = -1) -> bytes:
        chunk = self._stream.read(size)
        self._buf.write(chunk)
        return chunk

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._stream.close()
        finally:
            found = self._scanner.classify(self._buf.getvalue())
            logger.debug("license file %s: %s", self.path, found)
            self._sink.extend(found)

    def __enter__(self) -> "LicenseReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class LicenseScanner:
    """Classify license files through an injected oracle.

    Args:
        classifier: Oracle implementing LicenseClassifier; defaults to the
            anchor-phrase classifier.
        threshold: Minimum coverage percentage; below it the file also yields
            the UNKNOWN identifier.
    """

    def __init__(self, classifier: Optional[LicenseClassifier] = None,
                 threshold: float = Constants.COVERAGE_THRESHOLD):
        self.classifier = classifier or AnchorPhraseClassifier()
        self.threshold = threshold

    def classify(self, data: bytes) -> List[str]:
        cov = self.classifier.scan(data)
        found: List[str] = []
        if cov.percent < self.threshold:
            found.append(Constants.UNKNOWN_LICENSE)
        found.extend(m.id for m in cov.matches)
        return found

    def wrap(self, stream: IO[bytes], path: str, sink: List[str]) -> IO[bytes]:
        """Return a tee reader for license candidates, ``stream`` itself otherwise."""
        if not is_license_candidate(path):
            return stream
        return LicenseReader(stream, path, self, sink)  # type: ignore[return-value]

    def scan_tree(self, tree: FileTree) -> List[str]:
        """Classify every license file of ``tree`` without copying anything.

        Returns:
            Concatenation of per-file results, in tree order.
        """
        licenses: List[str] = []
        for entry in tree.entries():
            if entry.is_dir or entry.is_symlink:
                continue
            rel = tree.relative(entry.path)
            if not is_license_candidate(rel):
                continue
            with self.wrap(tree.open(entry.path), rel, licenses) as reader:
                while reader.read(io.DEFAULT_BUFFER_SIZE):
                    pass
        return licenses
