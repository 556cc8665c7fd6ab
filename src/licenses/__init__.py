"""License detection for module sources.

- classifier.py: classification oracle protocol and the default anchor-phrase classifier
- scanner.py: license file selection and the scan-while-copying tee reader
"""

from .classifier import AnchorPhraseClassifier, Coverage, LicenseClassifier, LicenseMatch
from .scanner import LICENSE_FILE_NAMES, LicenseReader, LicenseScanner, is_license_candidate

__all__ = [
    "AnchorPhraseClassifier",
    "Coverage",
    "LicenseClassifier",
    "LicenseMatch",
    "LICENSE_FILE_NAMES",
    "LicenseReader",
    "LicenseScanner",
    "is_license_candidate",
]
