import os
import stat

import pytest

from codebox.sandbox import workspace
from codebox.sandbox.errors import WorkspaceError


def test_create_write_destroy(tmp_path):
    ws = workspace.create(str(tmp_path))
    assert ws.path.parent == tmp_path
    assert ws.name.startswith("run-")

    target = workspace.write(ws, "main.py", "print('hi')\n")
    assert target.read_text(encoding="utf-8") == "print('hi')\n"
    assert stat.S_IMODE(os.stat(ws.path).st_mode) == 0o755
    assert stat.S_IMODE(os.stat(target).st_mode) == 0o644

    workspace.destroy(ws)
    assert not ws.path.exists()


def test_workspaces_are_unique(tmp_path):
    first = workspace.create(str(tmp_path))
    second = workspace.create(str(tmp_path))
    assert first.path != second.path


def test_destroy_is_idempotent(tmp_path):
    ws = workspace.create(str(tmp_path))
    workspace.destroy(ws)
    workspace.destroy(ws)


def test_allocate_cleans_up_on_error(tmp_path):
    with pytest.raises(RuntimeError):
        with workspace.allocate(str(tmp_path)) as ws:
            workspace.write(ws, "main.c", "int main(){}")
            raise RuntimeError("launch failed")
    assert list(tmp_path.iterdir()) == []


@pytest.mark.parametrize("filename", ["../escape.py", "sub/main.py", "", ".."])
def test_write_rejects_paths(tmp_path, filename):
    with workspace.allocate(str(tmp_path)) as ws:
        with pytest.raises(WorkspaceError):
            workspace.write(ws, filename, "x")


def test_create_failure_is_workspace_error(tmp_path):
    with pytest.raises(WorkspaceError):
        workspace.create(str(tmp_path / "missing"))
