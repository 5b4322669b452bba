from __future__ import annotations

import json
import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import patch

from mareatigre.constants import FILE_ALTURAS, FILE_PILOTE, FILE_SUDESTADA
from mareatigre.errors import StorageFailure
from mareatigre.store import RecordStore


class RecordStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tmp.name) / "data"
        self.store = RecordStore(self.data_dir)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_creates_data_dir(self) -> None:
        self.assertTrue(self.data_dir.is_dir())

    def test_read_missing_returns_defaults(self) -> None:
        self.assertEqual(self.store.read(FILE_ALTURAS), {"sf": []})
        self.assertEqual(self.store.read(FILE_PILOTE), {"registros": []})
        surge = self.store.read(FILE_SUDESTADA)
        self.assertFalse(surge["activa"])
        self.assertEqual(surge["pico_maximo"], 0)
        self.assertIsNone(surge["hora_pico"])
        self.assertIsNone(surge["timestamp_pico"])
        self.assertIsNone(surge["inicio"])

    def test_read_unknown_file_returns_empty_dict(self) -> None:
        self.assertEqual(self.store.read("otro.json"), {})

    def test_read_corrupt_returns_defaults(self) -> None:
        self.store.path(FILE_ALTURAS).write_text("{not json", encoding="utf-8")
        self.assertEqual(self.store.read(FILE_ALTURAS), {"sf": []})

        self.store.path(FILE_PILOTE).write_text("[1, 2, 3]", encoding="utf-8")
        self.assertEqual(self.store.read(FILE_PILOTE), {"registros": []})

    def test_defaults_are_independent_copies(self) -> None:
        first = self.store.read(FILE_ALTURAS)
        first["sf"].append({"altura": 1.0})
        self.assertEqual(self.store.read(FILE_ALTURAS), {"sf": []})

    def test_write_then_read_round_trip(self) -> None:
        doc = {
            "activa": True,
            "pico_maximo": 2.3,
            "hora_pico": "14:00",
            "timestamp_pico": 1760000000,
            "inicio": "2026-10-17T14:00:00-03:00",
        }
        self.assertTrue(self.store.write(FILE_SUDESTADA, doc))
        self.assertEqual(self.store.read(FILE_SUDESTADA), doc)
        self.assertEqual(list(self.data_dir.glob("*.tmp")), [])

    def test_write_keeps_unicode(self) -> None:
        self.store.write("notas.json", {"texto": "Río de la Plata"})
        raw = self.store.path("notas.json").read_text(encoding="utf-8")
        self.assertIn("Río", raw)

    def test_update_applies_transform(self) -> None:
        def _activate(doc):
            doc["activa"] = True
            doc["pico_maximo"] = 2.1
            return doc

        self.assertTrue(self.store.update(FILE_SUDESTADA, _activate))
        doc = self.store.read(FILE_SUDESTADA)
        self.assertTrue(doc["activa"])
        self.assertEqual(doc["pico_maximo"], 2.1)

    def test_update_write_failure_returns_false_and_keeps_document(self) -> None:
        self.store.write(FILE_ALTURAS, {"sf": [{"altura": 1.0}]})
        with patch.object(RecordStore, "_save", side_effect=StorageFailure("boom")):
            ok = self.store.update(FILE_ALTURAS, lambda doc: {"sf": []})
        self.assertFalse(ok)
        self.assertEqual(self.store.read(FILE_ALTURAS), {"sf": [{"altura": 1.0}]})

    def test_append_caps_to_most_recent(self) -> None:
        for i in range(75):
            self.assertTrue(self.store.append(FILE_ALTURAS, "sf", {"altura": float(i)}, 72))
        records = self.store.read(FILE_ALTURAS)["sf"]
        self.assertEqual(len(records), 72)
        self.assertEqual([r["altura"] for r in records], [float(i) for i in range(3, 75)])

    def test_append_replaces_non_list_value(self) -> None:
        self.store.write(FILE_PILOTE, {"registros": "oops"})
        self.store.append(FILE_PILOTE, "registros", {"altura": 1.5}, 100)
        self.assertEqual(self.store.read(FILE_PILOTE), {"registros": [{"altura": 1.5}]})

    def test_concurrent_appends_do_not_lose_updates(self) -> None:
        barrier = threading.Barrier(8)

        def _worker(n: int) -> None:
            barrier.wait()
            for i in range(5):
                self.store.append(FILE_PILOTE, "registros", {"altura": n * 10 + i}, 100)

        threads = [threading.Thread(target=_worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        records = self.store.read(FILE_PILOTE)["registros"]
        self.assertEqual(len(records), 40)
        self.assertEqual(len({r["altura"] for r in records}), 40)

    def test_writes_racing_updates_never_tear(self) -> None:
        path = self.store.path(FILE_SUDESTADA)
        self.store.write(FILE_SUDESTADA, {"activa": False, "n": 0})
        stop = threading.Event()
        failures: list[str] = []

        def _writer(tag: int) -> None:
            for i in range(100):
                doc = {"activa": bool(i % 2), "writer": tag, "pad": "x" * (200 * tag + i)}
                if not self.store.write(FILE_SUDESTADA, doc):
                    failures.append("write")

        def _bump(doc):
            doc["n"] = doc.get("n", 0) + 1
            return doc

        def _updater() -> None:
            for _ in range(100):
                if not self.store.update(FILE_SUDESTADA, _bump):
                    failures.append("update")

        def _reader() -> None:
            while not stop.is_set():
                try:
                    raw = path.read_text(encoding="utf-8")
                except OSError:
                    continue
                try:
                    json.loads(raw)
                except ValueError:
                    failures.append("torn")

        reader = threading.Thread(target=_reader)
        reader.start()
        workers = [
            threading.Thread(target=_writer, args=(1,)),
            threading.Thread(target=_writer, args=(2,)),
            threading.Thread(target=_updater),
        ]
        for t in workers:
            t.start()
        for t in workers:
            t.join()
        stop.set()
        reader.join()

        self.assertEqual(failures, [])
        self.assertIsInstance(self.store.read(FILE_SUDESTADA)["activa"], bool)
        self.assertEqual(list(self.data_dir.glob("*.tmp")), [])

    def test_write_waits_for_running_update(self) -> None:
        started = threading.Event()
        release = threading.Event()

        def _slow(doc):
            started.set()
            release.wait(5)
            doc["sf"] = [{"altura": 1.0}]
            return doc

        updater = threading.Thread(target=self.store.update, args=(FILE_ALTURAS, _slow))
        updater.start()
        self.assertTrue(started.wait(5))
        writer = threading.Thread(
            target=self.store.write, args=(FILE_ALTURAS, {"sf": [{"altura": 2.0}]})
        )
        writer.start()
        writer.join(0.2)
        self.assertTrue(writer.is_alive())
        release.set()
        updater.join()
        writer.join()
        self.assertEqual(self.store.read(FILE_ALTURAS), {"sf": [{"altura": 2.0}]})

    def test_initialize_files_does_not_overwrite(self) -> None:
        self.store.write(FILE_ALTURAS, {"sf": [{"altura": 1.2}]})
        self.store.initialize_files()
        self.assertEqual(self.store.read(FILE_ALTURAS), {"sf": [{"altura": 1.2}]})
        for name in (FILE_PILOTE, FILE_SUDESTADA):
            path = self.store.path(name)
            self.assertTrue(path.exists())
            json.loads(path.read_text(encoding="utf-8"))


if __name__ == "__main__":
    unittest.main()
