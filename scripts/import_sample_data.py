"""Create the jobs listed in sample-data.json on a running scheduler instance."""

from __future__ import annotations

import asyncio
import json
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import httpx

API_BASE_URL = os.getenv("API_URL", "http://localhost:3000")
SAMPLE_DATA_PATH = Path(__file__).resolve().parents[1] / "sample-data.json"


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:200]}"

    detail = payload.get("detail") if isinstance(payload, dict) else None
    return str(detail or payload)


async def _import_jobs(job_specs: list[dict[str, Any]]) -> tuple[list[str], int]:
    created_job_ids: list[str] = []
    failed_count = 0

    async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=10.0) as client:
        for job_spec in job_specs:
            try:
                response = await client.post("/api/jobs", json=job_spec)
            except httpx.HTTPError as error:
                failed_count += 1
                print(f"Failed to create job {job_spec!r}: {error}")
                continue

            if response.status_code != httpx.codes.CREATED:
                failed_count += 1
                print(f"Failed to create job {job_spec!r}: {_error_detail(response)}")
                continue

            job_id = str(response.json()["job_id"])
            created_job_ids.append(job_id)
            print(f"Created job {job_id}")

    return created_job_ids, failed_count


async def main() -> None:
    job_specs = json.loads(SAMPLE_DATA_PATH.read_text(encoding="utf-8"))
    started_at = datetime.now(UTC)
    print(f"Importing {len(job_specs)} sample jobs into {API_BASE_URL}")

    created_job_ids, failed_count = await _import_jobs(job_specs)
    duration_ms = round((datetime.now(UTC) - started_at).total_seconds() * 1000, 2)
    print(
        (
            "Import completed "
            f"(total={len(job_specs)}, created={len(created_job_ids)}, "
            f"failed={failed_count}, duration_ms={duration_ms})"
        )
    )
    for job_id in created_job_ids:
        print(f"  - {job_id}")

    if failed_count:
        raise SystemExit(1)


if __name__ == "__main__":
    asyncio.run(main())
