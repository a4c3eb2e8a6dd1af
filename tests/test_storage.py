from pathlib import Path

import orjson
import pytest

from scrape_guard.storage import ReportStorage, save_batch_report


def _report():
    return {
        "success": True,
        "results": [
            {
                "url": "https://x.com/a",
                "success": True,
                "data": {"title": "A", "fetched": object()},
                "metadata": {"domain": "x.com", "operation_id": "abcd1234", "timestamp": "t"},
            }
        ],
        "errors": [
            {
                "url": "https://y.com/b",
                "success": False,
                "error": {"type": "dns_error", "message": "DNS resolution failed", "can_retry": False},
                "metadata": {"domain": "y.com", "operation_id": "ffff0000", "timestamp": "t"},
            }
        ],
        "summary": {"total": 2, "succeeded": 1, "failed": 1, "success_rate": 0.5},
    }


@pytest.mark.asyncio
async def test_save_batch_report_writes_json(tmp_path: Path):
    storage = ReportStorage(tmp_path / "reports")
    path, size = await storage.save_batch_report(_report(), name="run1")

    assert path == tmp_path / "reports" / "run1.json"
    assert path.stat().st_size == size > 0

    document = orjson.loads(path.read_bytes())
    assert document["summary"]["success_rate"] == 0.5
    assert document["results"][0]["data"]["title"] == "A"
    assert isinstance(document["results"][0]["data"]["fetched"], str)
    assert document["errors"][0]["error"]["type"] == "dns_error"
    assert "circuit_breaker" not in document


@pytest.mark.asyncio
async def test_save_batch_report_with_breaker_status(tmp_path: Path):
    status = {"failures": {"y.com": 1}, "last_failures": {"y.com": 1.5}, "threshold": 5, "timeout": 60.0}
    path, _ = await save_batch_report(_report(), tmp_path, circuit_breaker=status)

    assert path.name.startswith("batch_") and path.suffix == ".json"
    document = orjson.loads(path.read_bytes())
    assert document["circuit_breaker"]["failures"] == {"y.com": 1}
