"""Tests for the shared-folder sync adapter."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import psutil
import pytest

from reclaim.config import Settings, Thresholds
from reclaim.engine import ReclaimEngine
from reclaim.models import BatchDeleteResult, DiskSnapshot
from reclaim.sync import (
    CacheStats,
    DeviceStats,
    ProcessSample,
    RemoteCommand,
    SyncStore,
    UsageStats,
    collect_top_processes,
    detect_alerts,
    editor_stats,
    editor_status,
    execute_command,
    get_device_id,
    process_command_queue,
    run_daemon,
    run_sync_cycle,
    sample_processes,
)


GIB = 1024**3

@pytest.fixture
def store(tmp_path):
    return SyncStore(tmp_path / "shared", tmp_path / "local")


def _stats(disk=0, memory=0, cache_bytes=0):
    return DeviceStats(
        device_id="d1",
        device_name="laptop",
        timestamp="2024-01-01T00:00:00+00:00",
        last_sync=0,
        disk=UsageStats.from_bytes(100 * GIB, disk * GIB, (100 - disk) * GIB, disk),
        memory=UsageStats.from_bytes(100, memory, 100 - memory, memory),
        cache_size=CacheStats(bytes=cache_bytes, formatted=""),
    )


class TestDeviceId:
    def test_generated_once(self, tmp_path):
        first = get_device_id(tmp_path / "state")
        second = get_device_id(tmp_path / "state")
        assert first == second
        assert (tmp_path / "state" / "device-id").read_text() == first

    def test_existing_id_kept(self, tmp_path):
        (tmp_path / "device-id").write_text("abc-123\n")
        assert get_device_id(tmp_path) == "abc-123"


class TestSyncStore:
    def test_write_and_read(self, store, tmp_path):
        store.write("device-1", {"deviceId": "1"})
        assert store.read("device-1") == {"deviceId": "1"}
        assert (tmp_path / "shared" / "device-1.json").exists()
        assert not list((tmp_path / "shared").glob("*.tmp"))

    def test_missing_key(self, store):
        assert store.read("commands-x") is None

    def test_corrupt_document(self, store, tmp_path):
        store.root
        (tmp_path / "shared" / "bad.json").write_text("{")
        assert store.read("bad") is None

    def test_fallback_when_shared_unavailable(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = SyncStore(blocker / "shared", tmp_path / "local")

        store.write("device-1", {"ok": True})

        assert store.root == tmp_path / "local"
        assert (tmp_path / "local" / "device-1.json").exists()


class TestAlerts:
    def test_no_alerts(self):
        assert detect_alerts(_stats(disk=50, memory=50), Thresholds()) == []

    def test_warning_and_critical(self):
        alerts = detect_alerts(_stats(disk=96, memory=90), Thresholds())
        assert [(a.type, a.value) for a in alerts] == [
            ("disk_critical", 96),
            ("disk_low", 4),
            ("memory_warning", 90),
        ]

    def test_low_disk_below_ten_gigabytes(self):
        alerts = detect_alerts(_stats(disk=91), Thresholds())
        assert [(a.type, a.value) for a in alerts] == [
            ("disk_warning", 91),
            ("disk_low", 9),
        ]

    def test_cleanup_available_in_gigabytes(self):
        alerts = detect_alerts(_stats(cache_bytes=12 * 1024**3), Thresholds())
        assert [(a.type, a.value) for a in alerts] == [("cleanup_available", 12)]

    def test_wire_format_is_camel_case(self):
        document = _stats().model_dump(by_alias=True)
        assert "deviceId" in document
        assert "lastSync" in document
        assert "cacheSize" in document
        assert "nodeModulesCount" in document


class TestProcessSampling:
    @patch("reclaim.sync.time.sleep")
    @patch("reclaim.sync.psutil.process_iter")
    def test_cpu_primed_before_measuring(self, mock_iter, mock_sleep):
        proc = MagicMock()
        proc.info = {"pid": 7, "name": "node", "memory_info": SimpleNamespace(rss=2048)}
        proc.cpu_percent.side_effect = [0.0, 37.5]
        mock_iter.return_value = [proc]

        (sample,) = sample_processes(interval=0.25)

        assert sample.cpu == 37.5
        assert sample.rss == 2048
        assert proc.cpu_percent.call_count == 2
        mock_sleep.assert_called_once_with(0.25)

    @patch("reclaim.sync.time.sleep")
    @patch("reclaim.sync.psutil.process_iter")
    def test_vanished_process_skipped(self, mock_iter, _sleep):
        gone = MagicMock()
        gone.info = {"pid": 1, "name": "short", "memory_info": None}
        gone.cpu_percent.side_effect = [0.0, psutil.NoSuchProcess(1)]
        denied = MagicMock()
        denied.cpu_percent.side_effect = psutil.AccessDenied(2)
        mock_iter.return_value = [gone, denied]

        assert sample_processes(interval=0) == []


class TestTopProcesses:
    def test_sorted_by_memory(self):
        samples = [
            ProcessSample(pid=1, name="small", rss=10, cpu=0.5),
            ProcessSample(pid=2, name="big", rss=5000, cpu=1.25),
            ProcessSample(pid=3, name="zombie", rss=0),
            ProcessSample(pid=4, name="Unknown", rss=100),
        ]

        top = collect_top_processes(samples, limit=2)

        assert [p.name for p in top] == ["big", "Unknown"]
        assert top[0].cpu == "1.2"
        assert top[0].model_dump(by_alias=True)["memFormatted"] == "5KB"


class TestEditorStats:
    def test_status_thresholds(self):
        assert editor_status(0, running=False) == "Offline"
        assert editor_status(1.0, running=True) == "Idle"
        assert editor_status(2.5, running=True) == "Active"
        assert editor_status(10.5, running=True) == "Compiling"

    def test_processes_summed_per_editor(self):
        samples = [
            ProcessSample(pid=1, name="Code Helper (Renderer)", rss=300 * 1024**2, cpu=4.0),
            ProcessSample(pid=2, name="Code", rss=200 * 1024**2, cpu=8.0),
            ProcessSample(pid=3, name="Cursor", rss=50 * 1024**2, cpu=0.5),
            ProcessSample(pid=4, name="python3", rss=1024**3, cpu=90.0),
        ]

        stats = {s.name: s for s in editor_stats(samples)}

        assert stats["VS Code"].mem == "500MB"
        assert stats["VS Code"].cpu == "12.0%"
        assert stats["VS Code"].status == "Compiling"
        assert stats["Cursor"].status == "Idle"
        assert stats["Antigravity"].status == "Offline"
        assert not stats["Antigravity"].is_running
        assert stats["Antigravity"].model_dump(by_alias=True)["isRunning"] is False


class TestRemoteCommands:
    def test_cleanup_nodemodules(self):
        engine = MagicMock(spec=ReclaimEngine)
        engine.delete_stale_reclaimables.return_value = BatchDeleteResult(deleted_count=1)

        command = RemoteCommand(type="cleanup-nodemodules", paths=["/a/node_modules"])
        assert execute_command(command, engine)
        engine.delete_stale_reclaimables.assert_called_once_with(["/a/node_modules"])

    def test_cleanup_caches(self):
        engine = MagicMock(spec=ReclaimEngine)
        assert execute_command(RemoteCommand(type="cleanup-caches"), engine)
        engine.cleanup_all_caches.assert_called_once()

    def test_unknown_command(self):
        engine = MagicMock(spec=ReclaimEngine)
        assert not execute_command(RemoteCommand(type="format-disk"), engine)
        engine.cleanup_all_caches.assert_not_called()
        engine.delete_stale_reclaimables.assert_not_called()

    def test_queue_drained(self, store):
        engine = MagicMock(spec=ReclaimEngine)
        engine.delete_stale_reclaimables.return_value = BatchDeleteResult()
        store.write(
            "commands-d1",
            {
                "pending": [
                    {"type": "cleanup-caches", "timestamp": 1},
                    {"type": "cleanup-nodemodules", "paths": ["/a/node_modules"]},
                ],
                "processed": [{"type": "old"}],
            },
        )

        assert process_command_queue(store, "d1", engine) == 2

        document = store.read("commands-d1")
        assert document["pending"] == []
        assert [c["type"] for c in document["processed"]] == [
            "cleanup-caches",
            "cleanup-nodemodules",
        ]

    def test_empty_queue(self, store):
        engine = MagicMock(spec=ReclaimEngine)
        assert process_command_queue(store, "d1", engine) == 0
        store.write("commands-d1", {"pending": [], "processed": []})
        assert process_command_queue(store, "d1", engine) == 0


class TestSyncCycle:
    @pytest.fixture
    def engine(self, tmp_path, fake_runner):
        settings = Settings(home=str(tmp_path), state_dir=str(tmp_path / "state"))
        disk_cache = MagicMock()
        disk_cache.read.return_value = DiskSnapshot(
            total_bytes=100, available_bytes=2, used_percent=98.0
        )
        return ReclaimEngine(settings, runner=fake_runner, disk_cache=disk_cache)

    @patch("reclaim.sync.sample_processes", return_value=[])
    @patch("reclaim.sync.collect_memory_stats", return_value=None)
    def test_writes_device_document(self, _mem, _procs, engine, store):
        stats = run_sync_cycle(engine, store, "d1", device_name="laptop")

        document = store.read("device-d1")
        assert document["deviceId"] == "d1"
        assert document["deviceName"] == "laptop"
        assert document["disk"]["percent"] == 98
        assert document["nodeModulesCount"] == 0
        assert document["editors"][0]["isRunning"] is False
        assert [a.type for a in stats.alerts] == ["disk_critical", "disk_low"]

    @patch("reclaim.sync.sample_processes", return_value=[])
    @patch("reclaim.sync.collect_memory_stats", return_value=None)
    def test_daemon_once(self, _mem, _procs, engine, tmp_path):
        engine.settings.sync_dir = str(tmp_path / "shared")

        run_daemon(engine, once=True)

        device_id = (tmp_path / "state" / "device-id").read_text()
        document = json.loads((tmp_path / "shared" / f"device-{device_id}.json").read_text())
        assert document["deviceId"] == device_id

    @patch("reclaim.sync.time.sleep")
    @patch("reclaim.sync.run_sync_cycle")
    def test_daemon_survives_failed_cycle(self, mock_cycle, mock_sleep, engine, tmp_path):
        engine.settings.sync_dir = str(tmp_path / "shared")
        mock_cycle.side_effect = [RuntimeError("shared folder vanished"), None, KeyboardInterrupt]

        with pytest.raises(KeyboardInterrupt):
            run_daemon(engine)

        assert mock_cycle.call_count == 3
        assert mock_sleep.call_count == 2

    @patch("reclaim.sync.time.sleep")
    @patch("reclaim.sync.run_sync_cycle")
    @patch("reclaim.sync.get_device_id")
    def test_daemon_retries_device_id(self, mock_id, mock_cycle, _sleep, engine, tmp_path):
        engine.settings.sync_dir = str(tmp_path / "shared")
        mock_id.side_effect = [OSError("read-only state dir"), "d1"]
        mock_cycle.side_effect = [None, KeyboardInterrupt]

        with pytest.raises(KeyboardInterrupt):
            run_daemon(engine)

        assert mock_id.call_count == 2
        assert mock_cycle.call_args_list[0].args[2] == "d1"
