"""Report output for resolved modules: template lines, JSON and CSV."""

from __future__ import annotations

import csv
import json
import logging
from typing import Iterable, List, Optional, Sequence

from common.errors import ModSourcesError
from constants import Constants
from gomod.models import ResolvedModule

logger = logging.getLogger(__name__)

CSV_HEADERS = ["module", "version", "licenses", "path"]


def format_licenses(licenses: Sequence[str]) -> str:
    """Render a license list as ``[A B]``."""
    return "[" + " ".join(licenses) + "]"


def render_line(template: str, module: ResolvedModule) -> str:
    """Render one module through a ``str.format`` template.

    Available fields: ``module``, ``version``, ``licenses``, ``path``.

    Raises:
        ModSourcesError: The template references an unknown field or is
            not a valid format string.
    """
    try:
        return template.format_map({
            "module": module.module,
            "version": module.version,
            "licenses": format_licenses(module.licenses),
            "path": module.path,
        })
    except (KeyError, IndexError, ValueError) as exc:
        raise ModSourcesError(f"invalid output template {template!r}: {exc}") from exc


def render(modules: Iterable[ResolvedModule], template: str = Constants.DEFAULT_TEMPLATE) -> List[str]:
    """Render every module, one line each."""
    return [render_line(template, m) for m in modules]


def infer_format(path: str, explicit: Optional[str] = None) -> str:
    """Report format from an explicit choice, else the file extension; JSON by default."""
    if explicit:
        return explicit.lower()
    if path.lower().endswith(".csv"):
        return "csv"
    return "json"


def export_json(modules: Iterable[ResolvedModule], path: str) -> None:
    """Exports the resolved modules to a JSON file.

    Args:
        modules (list): Resolved modules in walk order.
        path (str): File path to export the JSON.
    """
    data = [m.to_dict() for m in modules]
    try:
        with open(path, "w", encoding="utf-8") as file:
            json.dump(data, file, ensure_ascii=False, indent=4)
        logger.info("JSON file has been successfully exported at: %s", path)
    except OSError as e:
        raise ModSourcesError(f"JSON file couldn't be written to disk: {e}") from e


def export_csv(modules: Iterable[ResolvedModule], path: str) -> None:
    """Exports the resolved modules to a CSV file.

    Licenses are joined with a single space in one column.

    Args:
        modules (list): Resolved modules in walk order.
        path (str): File path to export the CSV.
    """
    rows = [CSV_HEADERS]
    for m in modules:
        rows.append([m.module, m.version, " ".join(m.licenses), m.path])
    try:
        with open(path, "w", newline="", encoding="utf-8") as file:
            export = csv.writer(file)
            export.writerows(rows)
        logger.info("CSV file has been successfully exported at: %s", path)
    except (OSError, csv.Error) as e:
        raise ModSourcesError(f"CSV file couldn't be written to disk: {e}") from e


def export_report(modules: Sequence[ResolvedModule], path: str, fmt: Optional[str] = None) -> None:
    """Write the report in the requested (or inferred) format."""
    if infer_format(path, fmt) == "csv":
        export_csv(modules, path)
    else:
        export_json(modules, path)
