"""Tests for directory and zip backed file trees."""

import io
import os
import zipfile

import pytest

from fstree import DirTree, ZipTree


def make_zip(files, prefix=""):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in files.items():
            zf.writestr(prefix + name, data)
    buf.seek(0)
    return zipfile.ZipFile(buf)


@pytest.fixture
def module_dir(tmp_path):
    (tmp_path / "go.mod").write_text("module example.com/m\n")
    (tmp_path / "LICENSE").write_text("license text")
    (tmp_path / "pkg").mkdir()
    (tmp_path / "pkg" / "a.go").write_text("package pkg\n")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    return tmp_path


class TestDirTree:
    """Directory-backed trees."""

    def test_entries_skip_git_and_mark_dirs(self, module_dir):
        tree = DirTree(str(module_dir))
        paths = [e.path for e in tree.entries()]
        assert paths == ["LICENSE", "go.mod", "pkg/", "pkg/a.go"]

    def test_git_file_at_root_is_skipped(self, tmp_path):
        (tmp_path / ".git").write_text("gitdir: ../.git/worktrees/x\n")
        (tmp_path / "go.mod").write_text("module m\n")
        assert [e.path for e in DirTree(str(tmp_path)).entries()] == ["go.mod"]

    def test_open_and_stat(self, module_dir):
        tree = DirTree(str(module_dir))
        with tree.open("pkg/a.go") as fh:
            assert fh.read() == b"package pkg\n"
        entry = tree.stat("pkg")
        assert entry.is_dir
        assert tree.stat("LICENSE").size == len("license text")

    def test_missing_file(self, module_dir):
        tree = DirTree(str(module_dir))
        with pytest.raises(FileNotFoundError):
            tree.open("nope.go")
        with pytest.raises(FileNotFoundError):
            tree.stat("nope.go")
        assert not tree.has_module_file("nope.go")
        assert tree.has_module_file("go.mod")

    def test_path_escape_is_rejected(self, module_dir):
        tree = DirTree(str(module_dir / "pkg"))
        with pytest.raises(FileNotFoundError):
            tree.open("../go.mod")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinks_are_reported_not_followed(self, module_dir):
        os.symlink(str(module_dir / "pkg"), str(module_dir / "link"))
        entries = {e.path: e for e in DirTree(str(module_dir)).entries()}
        assert entries["link"].is_symlink
        assert "link/a.go" not in entries

    def test_zip_info_for_file_and_dir(self, module_dir):
        tree = DirTree(str(module_dir))
        entries = {e.path: e for e in tree.entries()}
        file_info = tree.zip_info(entries["go.mod"])
        dir_info = tree.zip_info(entries["pkg/"])
        assert file_info.filename == "go.mod"
        assert file_info.compress_type == zipfile.ZIP_DEFLATED
        assert dir_info.is_dir()


class TestZipTree:
    """Zip-backed trees."""

    def test_infers_root_prefix(self):
        tree = ZipTree(make_zip({"go.mod": "module x.io/m\n", "LICENSE": "l"}, prefix="x.io/m@v1.0.0/"))
        assert tree.root_prefix == "x.io/m@v1.0.0/"
        assert tree.relative("x.io/m@v1.0.0/LICENSE") == "LICENSE"
        with tree.open_module_file("go.mod") as fh:
            assert fh.read() == b"module x.io/m\n"

    def test_no_prefix_when_top_level_differs(self):
        tree = ZipTree(make_zip({"go.mod": "module m\n", "a/b.go": "package a\n"}))
        assert tree.root_prefix == ""
        assert tree.has_module_file("go.mod")

    def test_open_missing_raises(self):
        tree = ZipTree(make_zip({"go.mod": "module m\n"}))
        with pytest.raises(FileNotFoundError):
            tree.open("LICENSE")
        with pytest.raises(FileNotFoundError):
            tree.stat("LICENSE")

    def test_entries_and_zip_info(self):
        tree = ZipTree(make_zip({"go.mod": "module m\n", "LICENSE": "mit"}))
        entries = list(tree.entries())
        assert [e.path for e in entries] == ["go.mod", "LICENSE"]
        info = tree.zip_info(entries[1])
        assert info.filename == "LICENSE"
        assert info.file_size == 3

    def test_close_closes_owned_archive(self):
        archive = make_zip({"go.mod": "module m\n"})
        with ZipTree(archive):
            pass
        assert archive.fp is None
