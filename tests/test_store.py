import json

from results.constants import STORAGE_KEYS
from results.store import DEFAULT_SETTINGS, STUDENTS_FILE, exam_doc_id, student_doc_id


def test_get_all_before_any_save(store):
    assert store.get_all() is None


def test_bulk_save_replaces_collection(store, student):
    assert store.bulk_save([student(1), student(2)])
    assert [r["id"] for r in store.get_all()] == [1, 2]
    assert store.bulk_save([student(3)])
    assert [r["id"] for r in store.get_all()] == [3]


def test_doc_id_is_deterministic():
    r = {"id": 101, "group": "science", "class": "11", "session": "2024-2025"}
    assert student_doc_id(r) == "STUDENT_101_SCIENCE_11_2024_2025"
    assert student_doc_id({"id": 5}) == "STUDENT_5___"


def test_same_identity_collapses_to_one_document(store, student):
    store.bulk_save([student(1, total=40), student(1, total=90)])
    records = store.get_all()
    assert len(records) == 1
    assert records[0]["total"] == 90


def test_delete_all(store, student):
    store.bulk_save([student(1)])
    assert store.delete_all()
    assert store.get_all() == []


def test_subscribe_and_unsubscribe(store, student):
    pushes = []
    unsubscribe = store.subscribe(pushes.append)
    store.bulk_save([student(1)])
    store.delete_all()
    unsubscribe()
    store.bulk_save([student(2)])
    assert [[r["id"] for r in p] for p in pushes] == [[1], []]


def test_settings_merge(store):
    assert store.get_settings() == DEFAULT_SETTINGS
    assert store.update_settings({"theme": "dark"})
    assert store.update_settings({"currentExam": "X_ICT"})
    s = store.get_settings()
    assert s["theme"] == "dark"
    assert s["currentExam"] == "X_ICT"


def test_subject_configs(store):
    assert store.get_subject_configs() == {}
    assert store.save_subject_config("ICT (11)", {"writtenPass": 20})
    assert store.get_subject_configs() == {"ICT (11)": {"writtenPass": 20}}
    assert store.delete_subject_config("ICT (11)")
    assert not store.delete_subject_config("ICT (11)")
    assert store.get_subject_configs() == {}


def test_class_subjects(store):
    assert store.save_class_subjects("11", ["ICT", " Physics ", "ICT", ""])
    assert store.get_class_subjects() == {"11": ["ICT", "Physics"]}


def test_saved_exams(store):
    assert exam_doc_id("Half Yearly 2025", "Bangla 1st.") == "Half_Yearly_2025_Bangla_1st_"
    doc_id = store.save_exam({"name": "Test 1", "subject": "ICT", "studentData": [], "createdAt": "2025-01-01T10:00:00"})
    store.save_exam({"name": "Test 2", "subject": "ICT", "studentData": [], "createdAt": "2025-03-01T10:00:00"})
    assert doc_id == "Test_1_ICT"
    assert [e["docId"] for e in store.get_saved_exams()] == ["Test_2_ICT", "Test_1_ICT"]

    assert store.update_exam(doc_id, {"name": "Class Test 1"})
    assert next(e for e in store.get_saved_exams() if e["docId"] == doc_id)["name"] == "Class Test 1"
    assert not store.update_exam("missing", {})

    assert store.delete_exam(doc_id)
    assert [e["docId"] for e in store.get_saved_exams()] == ["Test_2_ICT"]


def test_service_mirrors_to_cache(service, cache, student):
    assert service.save_data([student(1)])
    cached = json.loads(cache.get_item(STORAGE_KEYS["student_data"]))
    assert [r["id"] for r in cached] == [1]
    assert [r["id"] for r in service.load_data()] == [1]
    assert service.online


def test_service_falls_back_to_cache_when_store_breaks(service, store, cache, student):
    service.save_data([student(1), student(2)])
    (store.root / STUDENTS_FILE).write_text("{broken", encoding="utf-8")
    records = service.load_data()
    assert [r["id"] for r in records] == [1, 2]
    assert not service.online


def test_service_load_with_nothing_anywhere(service):
    assert service.load_data() is None


def test_service_clear(service, cache, student):
    service.save_data([student(1)])
    assert service.clear_data()
    assert cache.get_item(STORAGE_KEYS["student_data"]) is None
    assert service.load_data() is None


def test_theme(service, cache):
    assert service.load_theme() == "light"
    assert service.save_theme("dark")
    assert cache.get_item(STORAGE_KEYS["theme"]) == "dark"
    assert service.load_theme() == "dark"


def test_service_subscription_is_debounced(service, store, cache, student):
    pushes = []
    stop = service.subscribe(pushes.append, wait=60)
    store.bulk_save([student(1)])
    store.bulk_save([student(2)])
    # mirrored at once, delivered later
    cached = json.loads(cache.get_item(STORAGE_KEYS["student_data"]))
    assert [r["id"] for r in cached] == [2]
    assert pushes == []
    stop()
