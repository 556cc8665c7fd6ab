"""Parser and serializer for go.mod manifests.

The format is line oriented. Each line is split on whitespace; the first
token names a directive (``module``, ``go``, ``toolchain``, ``require``,
``replace``, ``retract``, ``exclude``, ``godebug``). Directives that take
several entries may open a block with ``(`` and close it with a line holding
only ``)``; lines inside a block use the directive grammar without the
keyword. Blocks never nest.
"""

from __future__ import annotations

import io
import logging
from typing import IO, Iterable, Iterator, List, Optional, Tuple, Union

from common.errors import MalformedManifestError
from gomod.models import Coordinate, ManifestRecord, Requirement

logger = logging.getLogger(__name__)

BLOCK_DIRECTIVES = ("require", "replace", "retract", "exclude", "godebug")
# Parsed for well-formedness only; they play no part in resolution.
DISCARDED_DIRECTIVES = ("retract", "exclude", "godebug")

ManifestSource = Union[str, bytes, IO[str], IO[bytes]]


def _iter_lines(source: ManifestSource) -> Iterator[str]:
    if isinstance(source, bytes):
        source = source.decode("utf-8", errors="replace")
    if isinstance(source, str):
        source = io.StringIO(source)
    for raw in source:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        yield raw.rstrip("\r\n")


def _unquote(token: str) -> str:
    return token.strip('"')


def _malformed(lineno: int, reason: str) -> MalformedManifestError:
    return MalformedManifestError(f"invalid go.mod line {lineno}: {reason}")


def _is_indirect(comment_tokens: List[str]) -> bool:
    comment = " ".join(comment_tokens)
    if not comment.startswith("//"):
        return False
    body = comment[2:].strip()
    return body == "indirect" or body.startswith("indirect;")


def _require_entry(tokens: List[str], lineno: int, in_block: bool) -> Requirement:
    """Build a Requirement from ``name version [// indirect]`` tokens.

    Outside a block the indirect marker only counts when the whole line,
    keyword included, has at least four tokens.
    """
    if len(tokens) < 2 or tokens[1].startswith("//"):
        raise _malformed(lineno, "require entry needs a module path and a version")
    coord = Coordinate(_unquote(tokens[0]), tokens[1])
    line_tokens = len(tokens) if in_block else len(tokens) + 1
    indirect = line_tokens >= (3 if in_block else 4) and _is_indirect(tokens[2:])
    return Requirement(coord, indirect)


def _replace_entry(tokens: List[str], lineno: int) -> Tuple[Coordinate, Coordinate]:
    """Split ``old [oldver] => new [newver]`` into its two coordinates."""
    pre: List[str] = []
    post: List[str] = []
    seen_arrow = False
    for token in tokens:
        if token.startswith("//"):
            break
        if token == "=>" and not seen_arrow:
            seen_arrow = True
            continue
        (post if seen_arrow else pre).append(token)
    if not seen_arrow or not pre or not post:
        raise _malformed(lineno, "replace entry must be 'old [version] => new [version]'")
    old = Coordinate(_unquote(pre[0]), pre[1] if len(pre) > 1 else "")
    new = Coordinate(_unquote(post[0]), post[1] if len(post) > 1 else "")
    return old, new


def _replace_key(old: Coordinate) -> str:
    return old.key if old.version else old.name


def _split_parens(parts: List[str]) -> List[str]:
    """Separate block parens glued to a directive: ``require(``, ``require ()``."""
    keyword = parts[0].rstrip("()")
    if keyword not in BLOCK_DIRECTIVES:
        return parts
    tokens = [keyword] + list(parts[0][len(keyword):])
    rest = parts[1:]
    if len(tokens) == 1 and rest and set(rest[0]) <= set("()"):
        tokens += list(rest[0])
        rest = rest[1:]
    return tokens + rest


def _apply_entry(record: ManifestRecord, directive: str, tokens: List[str],
                 lineno: int, in_block: bool) -> None:
    if directive == "require":
        record.requires.append(_require_entry(tokens, lineno, in_block))
    elif directive == "replace":
        old, new = _replace_entry(tokens, lineno)
        record.replace[_replace_key(old)] = new


def parse_mod(source: ManifestSource) -> ManifestRecord:
    """Parse go.mod content into a ManifestRecord.

    Args:
        source: Manifest text, bytes, or an open text/binary stream.

    Returns:
        ManifestRecord: The parsed manifest.

    Raises:
        MalformedManifestError: On duplicate module/go lines, nested blocks,
            stray closing parens, unknown directives or invalid entries.
    """
    record = ManifestRecord()
    block: Optional[str] = None

    for lineno, line in enumerate(_iter_lines(source), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("//"):
            continue
        parts = _split_parens(stripped.split())
        head = parts[0]

        if head == ")":
            if block is None:
                raise _malformed(lineno, "unexpected closing paren")
            block = None
            continue

        if block is not None:
            if head in BLOCK_DIRECTIVES:
                raise _malformed(lineno, f"{head} directive inside {block} block")
            _apply_entry(record, block, parts, lineno, in_block=True)
            continue

        if head in ("module", "go", "toolchain"):
            if len(parts) < 2:
                raise _malformed(lineno, f"{head} directive without a value")
            value = _unquote(parts[1])
            if head == "module":
                if record.name:
                    raise _malformed(lineno, "multiple module lines")
                record.name = value
            elif head == "go":
                if record.go_version:
                    raise _malformed(lineno, "multiple go lines")
                record.go_version = value
            else:
                if record.toolchain:
                    raise _malformed(lineno, "multiple toolchain lines")
                record.toolchain = value
            continue

        if head in BLOCK_DIRECTIVES:
            if len(parts) < 2:
                raise _malformed(lineno, f"standalone {head} on a line")
            if parts[1] == "(":
                if parts[2:3] != [")"]:
                    block = head
                continue
            _apply_entry(record, head, parts[1:], lineno, in_block=False)
            continue

        raise _malformed(lineno, f"unknown directive {head!r}")

    if block is not None:
        logger.debug("go.mod ended inside an unterminated %s block", block)
    return record


def _format_block(directive: str, lines: Iterable[str]) -> List[str]:
    entries = list(lines)
    if not entries:
        return []
    return [f"{directive} ("] + [f"\t{entry}" for entry in entries] + [")", ""]


def format_mod(record: ManifestRecord) -> str:
    """Serialize a ManifestRecord back to go.mod text.

    ``parse_mod(format_mod(record))`` yields a record equal to ``record``.
    """
    out: List[str] = []
    if record.name:
        out += [f"module {record.name}", ""]
    if record.go_version:
        out.append(f"go {record.go_version}")
    if record.toolchain:
        out.append(f"toolchain {record.toolchain}")
    if record.go_version or record.toolchain:
        out.append("")

    out += _format_block("require", (
        f"{r.coordinate.name} {r.coordinate.version}" + (" // indirect" if r.indirect else "")
        for r in record.requires
    ))

    replace_lines = []
    for key, new in record.replace.items():
        name, _, version = key.partition("@")
        old = f"{name} {version}" if version else name
        target = f"{new.name} {new.version}" if new.version else new.name
        replace_lines.append(f"{old} => {target}")
    out += _format_block("replace", replace_lines)

    return "\n".join(out).rstrip("\n") + "\n"
