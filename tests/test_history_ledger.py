import json
import threading
from datetime import timedelta

import pytest

from ecosort.exceptions import LedgerWriteError
from ecosort.image_input import FileMetadata
from ecosort.models.detection import SOURCE_DETECTOR, ClassificationVerdict, Detection
from ecosort.taxonomy import OutwardCategory, WasteCategory
from ecosort.utils.history_ledger import HISTORY_KEY, SESSION_KEY, HistoryLedger
from ecosort.utils.storage import MemoryStore


class FailingStore(MemoryStore):
    def set(self, key, value):
        raise LedgerWriteError("disk full")

    def delete(self, key):
        raise LedgerWriteError("disk full")


def fields(name="Plastic Bottle", category=OutwardCategory.RECYCLABLE, points=9, **extra):
    data = {
        "filename": f"{name.lower().replace(' ', '-')}.jpg",
        "file_size": 1024,
        "item_name": name,
        "category": category,
        "confidence": 90,
        "recyclable_rate": 85,
        "points": points,
        "description": f"{name} description",
        "disposal_method": "Recycle",
        "tips": ["Rinse"],
    }
    data.update(extra)
    return data


@pytest.fixture
def ledger(store, clock):
    return HistoryLedger(store=store, clock=clock)


def test_save_assigns_id_timestamp_and_session(ledger, clock):
    record = ledger.save_classification(fields())
    assert record.id.startswith("class_")
    assert record.timestamp == clock.now
    assert record.session_id == ledger.session_id
    assert record.tips == ("Rinse",)
    assert ledger.get_all_records() == [record]


def test_records_are_immutable(ledger):
    record = ledger.save_classification(fields())
    with pytest.raises(AttributeError):
        record.points = 1000


def test_session_id_is_persisted(store, clock):
    first = HistoryLedger(store=store, clock=clock)
    assert first.session_id.startswith("session_")
    assert store.get(SESSION_KEY) == first.session_id
    assert HistoryLedger(store=store, clock=clock).session_id == first.session_id


def test_records_survive_reload(store, clock):
    HistoryLedger(store=store, clock=clock).save_classification(fields())
    reloaded = HistoryLedger(store=store, clock=clock)
    assert len(reloaded.get_all_records()) == 1
    assert reloaded.get_all_records()[0].item_name == "Plastic Bottle"


def test_fifo_eviction_at_cap(ledger):
    first = ledger.save_classification(fields(name="Item 0"))
    last = None
    for i in range(1, 1001):
        last = ledger.save_classification(fields(name=f"Item {i}"))

    records = ledger.get_all_records()
    assert len(records) == 1000
    assert records[0] == last
    assert first not in records
    assert records[-1].item_name == "Item 1"


def test_small_cap(store, clock):
    ledger = HistoryLedger(store=store, clock=clock, max_records=3)
    for i in range(5):
        ledger.save_classification(fields(name=f"Item {i}"))
    assert [r.item_name for r in ledger.get_all_records()] == ["Item 4", "Item 3", "Item 2"]
    assert len(json.loads(store.get(HISTORY_KEY))) == 3


def test_write_failure_still_returns_record(clock):
    ledger = HistoryLedger(store=FailingStore(), clock=clock)
    record = ledger.save_classification(fields())
    assert record.item_name == "Plastic Bottle"
    assert ledger.get_all_records() == [record]


def test_record_classification_from_verdict(ledger):
    primary = Detection(name="bottle", category=WasteCategory.PLASTIC, confidence=90,
                        source=SOURCE_DETECTOR)
    verdict = ClassificationVerdict(primary=primary, all_detections=[primary],
                                    source_tag=SOURCE_DETECTOR, points=9, recyclable_rate=80,
                                    tips=["Rinse"], description="Recyclable material",
                                    disposal_method="Clean and place in recycling bin")
    record = ledger.record_classification(verdict, FileMetadata("bottle.jpg", 2048, (640, 480)))

    assert record.item_name == "bottle"
    assert record.category == OutwardCategory.RECYCLABLE
    assert record.points == 9
    assert record.file_size == 2048
    assert record.filename == "bottle.jpg"


def test_pagination(ledger):
    for i in range(25):
        ledger.save_classification(fields(name=f"Item {i}"))

    page = ledger.get_records(page=1, limit=10)
    assert page["total"] == 25
    assert page["has_more"] is True
    assert page["records"][0].item_name == "Item 24"

    last_page = ledger.get_records(page=3, limit=10)
    assert len(last_page["records"]) == 5
    assert last_page["has_more"] is False


def test_queries(ledger, clock):
    start = clock.now
    clock.now = start - timedelta(days=10)
    ledger.save_classification(fields(name="Banana Peel", category=OutwardCategory.ORGANIC))
    clock.now = start - timedelta(days=1)
    ledger.save_classification(fields(name="Glass Jar"))
    clock.now = start

    assert [r.item_name for r in ledger.get_recent_records(7)] == ["Glass Jar"]
    assert [r.item_name for r in ledger.get_records_by_category(OutwardCategory.ORGANIC)] == ["Banana Peel"]
    assert [r.item_name for r in ledger.search_records("BANANA")] == ["Banana Peel"]
    assert [r.item_name for r in ledger.search_records("glass-jar.jpg")] == ["Glass Jar"]
    assert len(ledger.search_records("description")) == 2
    assert ledger.search_records("nothing like this") == []


def test_export_import_round_trip(ledger, clock):
    ledger.save_classification(fields(name="Plastic Bottle"))
    clock.now += timedelta(minutes=5)
    ledger.save_classification(fields(name="Banana Peel", category=OutwardCategory.ORGANIC))
    clock.now += timedelta(minutes=5)
    ledger.save_classification(fields(name="Battery", category=OutwardCategory.HAZARDOUS))

    exported = ledger.export_data()
    payload = json.loads(exported)
    assert payload["sessionId"] == ledger.session_id
    assert len(payload["records"]) == 3
    assert payload["statistics"]["totalClassifications"] == 3

    other = HistoryLedger(store=MemoryStore(), clock=clock)
    assert other.import_data(exported) is True
    assert other.get_all_records() == ledger.get_all_records()
    assert other.get_statistics() == ledger.get_statistics()


def test_import_applies_cap(ledger, clock):
    for i in range(5):
        clock.now += timedelta(seconds=1)
        ledger.save_classification(fields(name=f"Item {i}"))

    small = HistoryLedger(store=MemoryStore(), clock=clock, max_records=2)
    assert small.import_data(ledger.export_data())
    assert [r.item_name for r in small.get_all_records()] == ["Item 4", "Item 3"]


@pytest.mark.parametrize("payload", [
    "not json",
    "[]",
    json.dumps({"records": "nope"}),
    json.dumps({"records": [{"id": "x"}]}),
])
def test_import_rejects_malformed_data(ledger, payload):
    ledger.save_classification(fields())
    assert ledger.import_data(payload) is False
    assert len(ledger.get_all_records()) == 1


def test_clear_all_records(ledger, store):
    ledger.save_classification(fields())
    assert ledger.clear_all_records() is True
    assert ledger.get_all_records() == []
    assert store.get(HISTORY_KEY) is None


def test_clear_failure_keeps_records(clock):
    ledger = HistoryLedger(store=FailingStore(), clock=clock)
    ledger.save_classification(fields())
    assert ledger.clear_all_records() is False
    assert len(ledger.get_all_records()) == 1


def test_negative_points_are_not_stored(ledger):
    assert ledger.save_classification(fields(points=-5)).points == 0


def test_percentages_are_clamped(ledger):
    record = ledger.save_classification(fields(confidence=150, recyclable_rate=-5))
    assert record.confidence == 100
    assert record.recyclable_rate == 0


def test_import_clamps_out_of_range_values(ledger, clock):
    payload = json.dumps({"records": [{
        "id": "class_1_abc", "timestamp": clock.now.isoformat(), "filename": "x.jpg",
        "fileSize": 10, "itemName": "X", "category": "Recyclable",
        "confidence": 400, "recyclableRate": 900, "points": 5,
    }]})
    assert ledger.import_data(payload) is True
    record = ledger.get_all_records()[0]
    assert (record.confidence, record.recyclable_rate) == (100, 100)
    assert ledger.get_statistics().average_recyclable_rate == 100


def test_concurrent_appends_are_not_lost(store, clock):
    ledger = HistoryLedger(store=store, clock=clock)
    threads_count, per_thread = 8, 50

    def append_many(worker):
        for i in range(per_thread):
            ledger.save_classification(fields(name=f"Worker {worker} item {i}"))

    threads = [threading.Thread(target=append_many, args=(w,)) for w in range(threads_count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    expected = threads_count * per_thread
    assert len(ledger.get_all_records()) == expected
    reloaded = HistoryLedger(store=store, clock=clock)
    assert len(reloaded.get_all_records()) == expected
    assert len({r.id for r in reloaded.get_all_records()}) == expected
