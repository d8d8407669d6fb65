import dataclasses
import json
import threading

import pytest

from helpers import make_analysis, make_record
from pixelmind.config import PipelineConfig
from pixelmind.learning.store import (
    InMemoryLearningStore,
    JsonFileLearningStore,
    create_learning_store,
)


@pytest.fixture
def snapshot(analysis):
    return analysis.snapshot()


def test_only_confident_successes_are_kept(store, snapshot):
    assert store.record(make_record("upscaler", {"scaleFactor": 2}, snapshot, confidence=70))
    assert not store.record(make_record("upscaler", {"scaleFactor": 2}, snapshot, confidence=69.9))
    assert not store.record(dataclasses.replace(make_record("upscaler", {}, snapshot), success=False))
    assert len(store) == 1


def test_threshold_cannot_be_lowered(snapshot):
    lenient = InMemoryLearningStore(threshold=50)

    assert not lenient.record(make_record("upscaler", {}, snapshot, confidence=60))


def test_ring_buffer_drops_oldest(snapshot):
    store = InMemoryLearningStore(capacity=2)
    for factor in (2, 3, 4):
        store.record(make_record("upscaler", {"scaleFactor": factor}, snapshot))

    assert store.capacity == 2
    kept = store.find_similar("upscaler", snapshot)
    assert sorted(r.parameters["scaleFactor"] for r in kept) == [3, 4]


def test_invalid_capacity():
    with pytest.raises(ValueError):
        InMemoryLearningStore(capacity=0)


def test_find_similar_orders_by_similarity(store, analysis):
    close = make_record("color_knockout", {"tolerance": 30}, analysis.snapshot())
    far = make_record(
        "color_knockout",
        {"tolerance": 40},
        make_analysis(has_transparency=True, width=200, height=200).snapshot(),
    )
    other_tool = make_record("upscaler", {"scaleFactor": 2}, analysis.snapshot())
    for record in (far, other_tool, close):
        store.record(record)

    scored = store.find_similar_scored("color_knockout", analysis)
    assert [r for r, _ in scored] == [close, far]
    assert [s for _, s in scored] == [100.0, 70.0]

    assert store.find_similar("color_knockout", analysis, min_similarity=80) == [close]
    assert store.find_similar("color_knockout", analysis, limit=1) == [close]
    assert store.find_similar("recolor_image", analysis) == []


def test_ties_prefer_newer_records(store, snapshot):
    older = make_record("color_knockout", {"tolerance": 30}, snapshot, timestamp=100.0)
    newer = make_record("color_knockout", {"tolerance": 35}, snapshot, timestamp=200.0)
    store.record(older)
    store.record(newer)

    assert store.find_similar("color_knockout", snapshot) == [newer, older]


def test_prune_clear_and_stats(store, snapshot):
    for tolerance in (10, 20, 30):
        store.record(make_record("color_knockout", {"tolerance": tolerance}, snapshot))
    store.record(make_record("upscaler", {"scaleFactor": 2}, snapshot))

    assert store.stats() == {
        "backend": "InMemoryLearningStore",
        "records": 4,
        "per_tool": {"color_knockout": 3, "upscaler": 1},
    }

    assert store.prune(keep_most_recent=2) == 2
    assert [r.tool_name for r in store.find_similar("color_knockout", snapshot)] == ["color_knockout"]
    assert store.prune(keep_most_recent=5) == 0

    store.clear()
    assert len(store) == 0


# --- JSON file backend ---

def test_json_store_survives_restart(tmp_path, snapshot):
    path = tmp_path / "history.json"

    first = JsonFileLearningStore(str(path))
    record = make_record("color_knockout", {"tolerance": 30}, snapshot, confidence=88)
    first.record(record)

    second = JsonFileLearningStore(str(path))
    (restored,) = second.find_similar("color_knockout", snapshot)
    assert restored.record_id == record.record_id
    assert restored.parameters == {"tolerance": 30}
    assert restored.confidence == 88
    assert restored.image == snapshot


def test_json_store_skips_bad_entries(tmp_path, snapshot):
    path = tmp_path / "history.json"
    good = make_record("upscaler", {"scaleFactor": 2}, snapshot).to_dict()
    weak = make_record("upscaler", {"scaleFactor": 3}, snapshot, confidence=20).to_dict()
    path.write_text(json.dumps({"records": [good, {"parameters": {}}, weak]}))

    store = JsonFileLearningStore(str(path))

    assert len(store) == 1


def test_json_store_ignores_unreadable_file(tmp_path):
    path = tmp_path / "history.json"
    path.write_text("{not json")

    store = JsonFileLearningStore(str(path))

    assert len(store) == 0


@pytest.mark.parametrize(
    "content",
    [
        [],
        {"records": "nope"},
        {"records": ["text", 3]},
        {"records": [{"tool_name": "upscaler", "image": "bad"}]},
        {"records": [{"tool_name": "upscaler", "metrics": [1, 2]}]},
    ],
)
def test_json_store_ignores_wrongly_shaped_file(tmp_path, content):
    path = tmp_path / "history.json"
    path.write_text(json.dumps(content))

    store = JsonFileLearningStore(str(path))

    assert len(store) == 0


def test_json_store_keeps_good_records_next_to_wrongly_shaped_ones(tmp_path, snapshot):
    path = tmp_path / "history.json"
    good = make_record("upscaler", {"scaleFactor": 2}, snapshot).to_dict()
    path.write_text(json.dumps({"records": ["text", {"tool_name": "upscaler", "image": "bad"}, good]}))

    store = JsonFileLearningStore(str(path))

    assert len(store) == 1


def test_json_store_concurrent_records(tmp_path, snapshot):
    path = tmp_path / "history.json"
    store = JsonFileLearningStore(str(path), capacity=200)

    def write(worker):
        for i in range(10):
            store.record(make_record("upscaler", {"scaleFactor": 2, "n": worker * 10 + i}, snapshot))

    threads = [threading.Thread(target=write, args=(w,)) for w in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store) == 80
    reloaded = JsonFileLearningStore(str(path), capacity=200)
    assert len(reloaded) == 80
    assert {r.parameters["n"] for r in reloaded.find_similar("upscaler", snapshot, limit=100)} == set(range(80))


def test_factory_selects_backend(tmp_path):
    on_disk = create_learning_store(PipelineConfig(learning_store_path=str(tmp_path / "h.json")))
    assert isinstance(on_disk, JsonFileLearningStore)

    missing_dir = create_learning_store(PipelineConfig(learning_store_path=str(tmp_path / "nope" / "h.json")))
    assert type(missing_dir) is InMemoryLearningStore

    in_memory = create_learning_store(PipelineConfig(learning_store_capacity=7))
    assert type(in_memory) is InMemoryLearningStore
    assert in_memory.capacity == 7
