"""Unit tests for request path resolution against the document root."""

import os
from pathlib import Path

import pytest

from fileserver.domain.sandbox import PathRejected, is_within, resolve_request_path


@pytest.fixture(name="layout")
def layout_fixture(tmp_path: Path) -> dict[str, Path]:
    """Build base/public/... with a sibling secret outside the document root."""
    base = (tmp_path / "base").resolve()
    public = base / "public"
    (public / "docs").mkdir(parents=True)
    (public / "docs" / "guide.txt").write_text("guide")
    (public / "index.html").write_text("<h1>hi</h1>")
    (base / "secret.txt").write_text("secret")
    return {"base": base, "public": public}


def test_resolves_file_inside_root(layout):
    """Paths under the document root resolve to their canonical location."""
    resolved = resolve_request_path(
        "/public/docs/guide.txt", layout["public"], layout["base"]
    )
    assert resolved == layout["public"] / "docs" / "guide.txt"


def test_root_itself_is_allowed(layout):
    """The document root is inside itself."""
    assert resolve_request_path("/public", layout["public"], layout["base"]) == layout[
        "public"
    ]


def test_dot_segments_are_collapsed(layout):
    """Harmless ``.`` and ``..`` segments still land inside the root."""
    resolved = resolve_request_path(
        "/public/docs/../docs/./guide.txt", layout["public"], layout["base"]
    )
    assert resolved == layout["public"] / "docs" / "guide.txt"


@pytest.mark.parametrize(
    "request_path",
    [
        "/public/../secret.txt",
        "/secret.txt",
        "/",
        "/public/../../../../etc/passwd",
        "/../../etc/passwd",
        "//etc/passwd",
    ],
)
def test_paths_outside_root_are_rejected(layout, request_path):
    """Existing targets outside the document root are rejected."""
    with pytest.raises(PathRejected):
        resolve_request_path(request_path, layout["public"], layout["base"])


def test_missing_path_is_rejected(layout):
    """Canonicalization needs the target to exist."""
    with pytest.raises(PathRejected):
        resolve_request_path("/public/nope.txt", layout["public"], layout["base"])


def test_embedded_nul_is_rejected(layout):
    """A NUL byte cannot name a file and is reported like a missing one."""
    with pytest.raises(PathRejected):
        resolve_request_path("/public/index.html\x00.txt", layout["public"], layout["base"])


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_symlink_escaping_root_is_rejected(layout):
    """A link inside the root pointing outside it does not grant access."""
    (layout["public"] / "escape.txt").symlink_to(layout["base"] / "secret.txt")
    with pytest.raises(PathRejected):
        resolve_request_path("/public/escape.txt", layout["public"], layout["base"])


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_broken_symlink_is_rejected(layout):
    """Dangling links fail canonicalization."""
    (layout["public"] / "dangling").symlink_to(layout["base"] / "missing")
    with pytest.raises(PathRejected):
        resolve_request_path("/public/dangling", layout["public"], layout["base"])


def test_base_directory_defaults_to_working_directory(layout, monkeypatch):
    """Without an explicit base the URL space is the process working directory."""
    monkeypatch.chdir(layout["base"])
    resolved = resolve_request_path("/public/index.html", "public")
    assert resolved == layout["public"] / "index.html"


def test_sibling_with_shared_prefix_is_not_inside(tmp_path: Path):
    """The containment check is per path component, not per character."""
    root = tmp_path / "site"
    sibling = tmp_path / "site-private"
    assert is_within(root / "a", root)
    assert not is_within(sibling, root)
