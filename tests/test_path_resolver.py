"""Tests for secure-root path resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from remoteadmin.errors import AccessDeniedError, InvalidNameError
from remoteadmin.security.path_resolver import SecurePathResolver, check_name

_INVALID_NAMES = [
    "..",
    "../../etc/passwd",
    "..hidden",
    "report..txt",
    "nested/file.txt",
    "/etc/passwd",
    "nested\\file.txt",
    "..\\..\\windows",
    "",
    "nul\x00byte",
]


@pytest.mark.parametrize("name", _INVALID_NAMES)
def test_invalid_names_rejected_without_touching_filesystem(
    name: str, secure_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    resolver = SecurePathResolver(secure_dir)

    def _no_fs(*args: object, **kwargs: object) -> Path:
        raise AssertionError("filesystem consulted")

    with monkeypatch.context() as patched:
        patched.setattr(Path, "resolve", _no_fs)
        patched.setattr(Path, "is_file", _no_fs)
        with pytest.raises(InvalidNameError):
            resolver.resolve(name)


def test_check_name_accepts_plain_segment() -> None:
    check_name("report.txt")
    check_name(".env")


def test_resolve_plain_name_stays_under_root(secure_dir: Path) -> None:
    resolver = SecurePathResolver(secure_dir)
    resolved = resolver.resolve("report.txt")
    assert resolved == secure_dir.resolve() / "report.txt"


def test_root_is_canonicalised(tmp_path: Path) -> None:
    root = tmp_path / "a" / ".." / "secure"
    (tmp_path / "secure").mkdir()
    resolver = SecurePathResolver(root)
    assert resolver.root == (tmp_path / "secure").resolve()


def test_symlink_escape_is_access_denied(tmp_path: Path, secure_dir: Path) -> None:
    outside = tmp_path / "outside.txt"
    outside.write_text("secret")
    (secure_dir / "link.txt").symlink_to(outside)
    resolver = SecurePathResolver(secure_dir)

    with pytest.raises(AccessDeniedError):
        resolver.resolve("link.txt")


def test_sibling_directory_with_shared_prefix_is_denied(tmp_path: Path, secure_dir: Path) -> None:
    sibling = tmp_path / "secure2"
    sibling.mkdir()
    (sibling / "data.txt").write_text("not yours")
    (secure_dir / "peek").symlink_to(sibling / "data.txt")
    resolver = SecurePathResolver(secure_dir)

    with pytest.raises(AccessDeniedError):
        resolver.resolve("peek")


def test_symlink_within_root_is_allowed(secure_dir: Path) -> None:
    target = secure_dir / "real.txt"
    target.write_text("data")
    (secure_dir / "alias.txt").symlink_to(target)
    resolver = SecurePathResolver(secure_dir)

    assert resolver.ensure_file("alias.txt") == target.resolve()


def test_ensure_file_missing_raises_file_not_found(secure_dir: Path) -> None:
    resolver = SecurePathResolver(secure_dir)
    with pytest.raises(FileNotFoundError):
        resolver.ensure_file("absent.txt")


def test_ensure_file_directory_raises_file_not_found(secure_dir: Path) -> None:
    (secure_dir / "subdir").mkdir()
    resolver = SecurePathResolver(secure_dir)
    with pytest.raises(FileNotFoundError):
        resolver.ensure_file("subdir")


def test_dot_resolves_to_root_which_is_not_a_file(secure_dir: Path) -> None:
    resolver = SecurePathResolver(secure_dir)
    assert resolver.resolve(".") == secure_dir.resolve()
    with pytest.raises(FileNotFoundError):
        resolver.ensure_file(".")


def test_list_files_skips_directories_and_sorts(secure_dir: Path) -> None:
    (secure_dir / "b.log").write_text("b")
    (secure_dir / "a.txt").write_text("a")
    (secure_dir / "nested").mkdir()
    (secure_dir / "nested" / "deep.txt").write_text("deep")
    resolver = SecurePathResolver(secure_dir)

    assert resolver.list_files() == ["a.txt", "b.log"]


def test_list_files_missing_root_raises_os_error(tmp_path: Path) -> None:
    resolver = SecurePathResolver(tmp_path / "gone")
    with pytest.raises(OSError):
        resolver.list_files()
