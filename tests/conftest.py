import pytest

from results.store import FileStore, LocalCache
from results.sync import DataService


@pytest.fixture()
def store(tmp_path):
    """File store rooted in a temporary directory."""
    return FileStore(tmp_path / "data")


@pytest.fixture()
def cache(tmp_path):
    return LocalCache(tmp_path / "cache.json")


@pytest.fixture()
def service(store, cache):
    return DataService(store, cache)


def make_student(id, written=30, mcq=15, practical=20, total=None, group="science", name=None, **extra):
    if total is None:
        total = written + mcq + practical
    rec = {
        "id": id,
        "name": name or f"Student {id}",
        "group": group,
        "class": "",
        "session": "",
        "written": written,
        "mcq": mcq,
        "practical": practical,
        "total": total,
    }
    rec.update(extra)
    return rec


@pytest.fixture()
def student():
    return make_student
