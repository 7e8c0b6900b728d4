import io
from types import SimpleNamespace

import pytest
from databricks.sdk.errors import DatabricksError

from metacat.core.adapters.databricksfiles import DatabricksFilesObjectStore, volume_path
from metacat.core.adapters.localfs import LocalObjectStore
from metacat.core.adapters.memory import InMemoryObjectStore
from metacat.core.errors import BackendError


def test_local_put_creates_parents_and_replaces(tmp_path):
    store = LocalObjectStore()
    path = str(tmp_path / "t" / "metadata" / "00000-x.metadata.json")

    store.put(path, b"first")
    store.put(path, b"second")

    assert store.get(path) == b"second"
    assert sorted(p.name for p in (tmp_path / "t" / "metadata").iterdir()) == ["00000-x.metadata.json"]


def test_local_accepts_file_uris(tmp_path):
    store = LocalObjectStore()
    store.put(f"file://{tmp_path}/a.json", b"{}")

    assert store.get(str(tmp_path / "a.json")) == b"{}"
    store.copy(f"file://{tmp_path}/a.json", str(tmp_path / "b.json"))
    assert (tmp_path / "b.json").read_bytes() == b"{}"


def test_local_errors_are_backend_errors(tmp_path):
    store = LocalObjectStore()

    with pytest.raises(BackendError):
        store.get(str(tmp_path / "missing.json"))
    with pytest.raises(BackendError, match="Unsupported location"):
        store.get("s3://bucket/key.json")
    (tmp_path / "file").write_bytes(b"")
    with pytest.raises(BackendError):
        store.put(str(tmp_path / "file" / "child.json"), b"x")


def test_memory_store_round_trip():
    store = InMemoryObjectStore()
    store.put("memory://a", b"x")
    store.copy("memory://a", "memory://b")

    assert store.exists("memory://b")
    assert store.get("memory://b") == b"x"
    with pytest.raises(BackendError):
        store.get("memory://c")


@pytest.mark.parametrize(
    "location,expected",
    [
        ("/Volumes/main/raw/wh/t.json", "/Volumes/main/raw/wh/t.json"),
        ("dbfs:/Volumes/main/raw/wh/t.json", "/Volumes/main/raw/wh/t.json"),
    ],
)
def test_volume_path(location, expected):
    assert volume_path(location) == expected


@pytest.mark.parametrize("location", ["/tmp/t.json", "dbfs:/tmp/t.json", "s3://b/t.json"])
def test_volume_path_rejects_non_volume_locations(location):
    with pytest.raises(BackendError, match="volume"):
        volume_path(location)


class _Files:
    def __init__(self):
        self.objects: dict[str, bytes] = {}

    def download(self, path):
        if path not in self.objects:
            raise DatabricksError(f"not found: {path}")
        return SimpleNamespace(contents=io.BytesIO(self.objects[path]))

    def upload(self, path, contents, overwrite=False):
        self.objects[path] = contents.read()


def test_databricks_store_round_trip():
    files = _Files()
    store = DatabricksFilesObjectStore(SimpleNamespace(files=files))

    store.put("dbfs:/Volumes/main/raw/wh/a.json", b"{}")
    store.copy("/Volumes/main/raw/wh/a.json", "/Volumes/main/raw/wh/b.json")

    assert files.objects == {
        "/Volumes/main/raw/wh/a.json": b"{}",
        "/Volumes/main/raw/wh/b.json": b"{}",
    }
    assert store.get("/Volumes/main/raw/wh/b.json") == b"{}"


def test_databricks_errors_are_backend_errors():
    store = DatabricksFilesObjectStore(SimpleNamespace(files=_Files()))

    with pytest.raises(BackendError, match="Could not read"):
        store.get("/Volumes/main/raw/wh/missing.json")
