"""Report storage with async I/O"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import aiofiles
import orjson
from loguru import logger


class ReportStorage:
    """
    Writes batch reports as JSON without blocking the event loop.
    Uses aiofiles for async I/O and orjson for serialization.
    """

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    async def save_batch_report(
        self,
        report: Dict[str, Any],
        name: Optional[str] = None,
        circuit_breaker: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Path, int]:
        """
        Save a ``wrap_batch`` result.

        Args:
            report: Batch result (``success``, ``results``, ``errors``, ``summary``)
            name: File stem, defaults to a UTC timestamp
            circuit_breaker: Optional breaker snapshot stored alongside

        Returns:
            Tuple of (output_file_path, bytes_written)
        """
        saved_at = datetime.now(timezone.utc)
        stem = name or f"batch_{saved_at.strftime('%Y%m%d_%H%M%S')}"
        output_file = self.output_dir / f"{stem}.json"

        document = {
            "saved_at": saved_at.isoformat(),
            "summary": report.get("summary", {}),
            "results": report.get("results", []),
            "errors": report.get("errors", []),
        }
        if circuit_breaker is not None:
            document["circuit_breaker"] = circuit_breaker

        # Scraped data may hold values orjson cannot encode natively
        json_bytes = orjson.dumps(
            document,
            default=str,
            option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS,
        )

        async with aiofiles.open(output_file, "wb") as f:
            await f.write(json_bytes)

        logger.debug(
            f"Saved batch report: {output_file.name} ({len(json_bytes) / 1024:.1f}KB)"
        )
        return output_file, len(json_bytes)


async def save_batch_report(
    report: Dict[str, Any],
    output_dir: Path,
    name: Optional[str] = None,
    circuit_breaker: Optional[Dict[str, Any]] = None,
) -> Tuple[Path, int]:
    """Convenience wrapper around ``ReportStorage.save_batch_report``"""
    storage = ReportStorage(output_dir)
    return await storage.save_batch_report(report, name=name, circuit_breaker=circuit_breaker)
