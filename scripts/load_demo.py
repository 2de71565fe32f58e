#!/usr/bin/env python3
"""
Load demo for the endpoint simulator.

Fires concurrent streaming chat completions at a running simulator and
reports time to first chunk, chunk counts and total duration.

Usage:
    python scripts/load_demo.py --url http://localhost:4545 --sessions 50
"""

import argparse
import asyncio
import json
import statistics
import time

import httpx


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


async def run_session(client: httpx.AsyncClient, url: str) -> tuple[float, int, float]:
    """Stream one completion and return (ttfc_ms, chunks, total_ms)."""
    payload = {
        "model": "gpt-4o-2024-08-06",
        "stream": True,
        "messages": [{"role": "user", "content": "Tell me something useful."}],
    }
    start = time.perf_counter()
    first_chunk_at: float | None = None
    chunks = 0

    async with client.stream("POST", f"{url}/v1/chat/completions", json=payload) as response:
        response.raise_for_status()
        async for line in response.aiter_lines():
            if not line.startswith("data: "):
                continue
            data = line.removeprefix("data: ")
            if data == "[DONE]":
                break
            json.loads(data)
            if first_chunk_at is None:
                first_chunk_at = time.perf_counter()
            chunks += 1

    end = time.perf_counter()
    return ((first_chunk_at or end) - start) * 1000, chunks, (end - start) * 1000


async def main(url: str, sessions: int) -> None:
    print_section(f"Streaming {sessions} concurrent sessions against {url}")

    limits = httpx.Limits(max_connections=sessions, max_keepalive_connections=sessions)
    async with httpx.AsyncClient(timeout=60.0, limits=limits) as client:
        started = time.perf_counter()
        results = await asyncio.gather(
            *(run_session(client, url) for _ in range(sessions)),
            return_exceptions=True,
        )
        elapsed = time.perf_counter() - started

    ok = [r for r in results if not isinstance(r, BaseException)]
    failed = [r for r in results if isinstance(r, BaseException)]

    print(f"\n  Completed: {len(ok)}   Failed: {len(failed)}   Wall time: {elapsed:.2f}s")
    if ok:
        ttfc = [r[0] for r in ok]
        total = [r[2] for r in ok]
        print(f"  Time to first chunk: median {statistics.median(ttfc):.1f}ms, max {max(ttfc):.1f}ms")
        print(f"  Session duration:    median {statistics.median(total):.1f}ms, max {max(total):.1f}ms")
        print(f"  Chunks per session:  median {statistics.median(r[1] for r in ok):.0f}")
    for error in failed[:5]:
        print(f"  ✗ {error!r}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--url", default="http://localhost:4545")
    parser.add_argument("--sessions", type=int, default=20)
    args = parser.parse_args()
    asyncio.run(main(args.url, args.sessions))
