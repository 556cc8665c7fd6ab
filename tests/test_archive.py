"""Tests for module archives and fused copy/scan."""

import io
import os
import zipfile

import pytest

from archive import OutputSink, archive_tree, clean_filename
from fstree import DirTree, ZipTree
from gomod import Coordinate
from licenses import Coverage, LicenseMatch, LicenseScanner


class CountingClassifier:
    """Reports MIT for everything and counts calls."""

    def __init__(self):
        self.calls = 0

    def scan(self, data):
        self.calls += 1
        return Coverage(100.0, [LicenseMatch("MIT")])


def proxy_zip_tree(files, prefix="x.io/m@v1.0.0/"):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for path, data in files.items():
            zf.writestr(prefix + path, data)
    buf.seek(0)
    return ZipTree(zipfile.ZipFile(buf))


class TestCleanFilename:
    """Archive naming."""

    def test_separators_replaced(self):
        assert clean_filename("github.com/a/b", "v1.0.0") == "github.com_a_b@v1.0.0.zip"

    def test_without_version(self):
        assert clean_filename("github.com/a/b", "") == "github.com_a_b.zip"


class TestOutputSink:
    """Output location and existing archive detection."""

    def test_disabled_sink(self):
        sink = OutputSink()
        coord = Coordinate("x.io/m", "v1.0.0")
        assert not sink.enabled
        assert sink.relative_path(coord) == ""
        assert sink.full_path(coord) is None
        assert not sink.already_written(coord)
        with sink.open(coord) as writer:
            assert writer is None

    def test_prefix_is_prepended(self, tmp_path):
        sink = OutputSink(str(tmp_path), "deps")
        coord = Coordinate("x.io/m", "v1.0.0")
        assert sink.relative_path(coord) == os.path.join("deps", "x.io_m@v1.0.0.zip")
        with sink.open(coord) as writer:
            writer.writestr("go.mod", "module x.io/m\n")
        assert (tmp_path / "deps" / "x.io_m@v1.0.0.zip").is_file()
        assert sink.already_written(coord)

    def test_empty_file_is_not_written(self, tmp_path):
        sink = OutputSink(str(tmp_path))
        coord = Coordinate("x.io/m", "v1.0.0")
        (tmp_path / "x.io_m@v1.0.0.zip").write_bytes(b"")
        assert not sink.already_written(coord)

    def test_open_existing(self, tmp_path):
        sink = OutputSink(str(tmp_path))
        coord = Coordinate("x.io/m", "v1.0.0")
        with sink.open(coord) as writer:
            writer.writestr("x.io/m@v1.0.0/go.mod", "module x.io/m\n")
        with sink.open_existing(coord) as tree:
            with tree.open_module_file("go.mod") as fh:
                assert fh.read() == b"module x.io/m\n"


class TestArchiveTree:
    """Copying while scanning."""

    def test_zip_to_zip_copy_scans_once(self, tmp_path):
        tree = proxy_zip_tree({"go.mod": "module x.io/m\n", "LICENSE": "mit text", "a.go": "package m\n"})
        classifier = CountingClassifier()
        out = tmp_path / "out.zip"
        with zipfile.ZipFile(str(out), "w") as writer:
            licenses = archive_tree(tree, writer, LicenseScanner(classifier))
        assert licenses == ["MIT"]
        assert classifier.calls == 1
        with zipfile.ZipFile(str(out)) as zf:
            assert sorted(zf.namelist()) == [
                "x.io/m@v1.0.0/LICENSE",
                "x.io/m@v1.0.0/a.go",
                "x.io/m@v1.0.0/go.mod",
            ]
            assert zf.read("x.io/m@v1.0.0/LICENSE") == b"mit text"

    def test_dir_to_zip_skips_git(self, tmp_path):
        src = tmp_path / "src"
        (src / "pkg").mkdir(parents=True)
        (src / ".git").mkdir()
        (src / ".git" / "config").write_text("[core]\n")
        (src / "go.mod").write_text("module example.com/m\n")
        (src / "pkg" / "p.go").write_text("package pkg\n")
        out = tmp_path / "out.zip"
        with zipfile.ZipFile(str(out), "w") as writer:
            licenses = archive_tree(DirTree(str(src)), writer, LicenseScanner(CountingClassifier()))
        assert licenses == []
        with zipfile.ZipFile(str(out)) as zf:
            assert zf.namelist() == ["go.mod", "pkg/", "pkg/p.go"]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinks_are_skipped(self, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        (src / "go.mod").write_text("module example.com/m\n")
        os.symlink(str(src / "go.mod"), str(src / "alias.mod"))
        out = tmp_path / "out.zip"
        with zipfile.ZipFile(str(out), "w") as writer:
            archive_tree(DirTree(str(src)), writer, LicenseScanner(CountingClassifier()))
        with zipfile.ZipFile(str(out)) as zf:
            assert zf.namelist() == ["go.mod"]

    def test_no_writer_only_scans(self):
        tree = proxy_zip_tree({"go.mod": "module x.io/m\n", "LICENSE": "mit text", "sub/COPYING": "more"})
        classifier = CountingClassifier()
        assert archive_tree(tree, None, LicenseScanner(classifier)) == ["MIT", "MIT"]
        assert classifier.calls == 2
