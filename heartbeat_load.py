"""
heartbeat_load.py — simple async load script for the presence endpoints

Sends one heartbeat per simulated visitor, then polls the active count.

Usage:
  python heartbeat_load.py --base http://127.0.0.1:8000 --visitors 2000 --concurrency 100 --polls 50
"""
import argparse
import asyncio
import time
import uuid
from datetime import datetime, timezone

import httpx

PAGES = ["/", "/store", "/links", "/guestbook"]


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


async def _beat_one(client: httpx.AsyncClient, base: str, idx: int):
    payload = {"visitorId": f"load-{uuid.uuid4().hex[:12]}", "page": PAGES[idx % len(PAGES)]}
    try:
        r = await client.post(f"{base}/presence/heartbeat", json=payload, timeout=10)
        r.raise_for_status()
        return True
    except httpx.HTTPError:
        return False


async def _poll_one(client: httpx.AsyncClient, base: str):
    try:
        r = await client.get(f"{base}/presence/active-count", timeout=10)
        r.raise_for_status()
        return r.json().get("activeCount")
    except httpx.HTTPError:
        return None


async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--base", default="http://127.0.0.1:8000")
    parser.add_argument("--visitors", type=int, default=2000)
    parser.add_argument("--concurrency", type=int, default=100)
    parser.add_argument("--polls", type=int, default=50)
    args = parser.parse_args()

    start_iso = _now_iso()
    t0 = time.perf_counter()
    ok = 0

    limit = httpx.Limits(max_connections=args.concurrency, max_keepalive_connections=args.concurrency)
    async with httpx.AsyncClient(limits=limit) as client:
        sem = asyncio.Semaphore(args.concurrency)

        async def _task(i):
            nonlocal ok
            async with sem:
                if await _beat_one(client, args.base, i):
                    ok += 1

        await asyncio.gather(*(_task(i) for i in range(args.visitors)))
        t_beats = time.perf_counter() - t0

        counts = await asyncio.gather(*(_poll_one(client, args.base) for _ in range(args.polls)))

    dt = time.perf_counter() - t0
    seen = [c for c in counts if c is not None]
    print(f"START: {start_iso}")
    print(f"END:   {_now_iso()}")
    print(f"TOTAL: {dt:.3f} s")
    print(f"OPS:   heartbeats={args.visitors}, ok={ok}, fail={args.visitors - ok}")
    if t_beats > 0:
        print(f"TPS:   {ok/t_beats:.1f} heartbeats/s")
    print(f"POLLS: {len(seen)}/{args.polls} ok, last activeCount={seen[-1] if seen else 'n/a'}")


if __name__ == "__main__":
    asyncio.run(main())
