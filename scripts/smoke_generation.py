from __future__ import annotations

import argparse
import asyncio
import os
import sys
from datetime import date, timedelta
from pathlib import Path

import httpx

BACKEND_DIR = Path(__file__).resolve().parents[1] / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from wanderplan.client import GenerationStatusPoller, StatusSnapshot  # noqa: E402


def _print_update(snapshot: StatusSnapshot) -> None:
    print(f"  {snapshot.status:<10} {snapshot.progress:>3}%")


async def _ensure_session(client: httpx.AsyncClient, email: str, password: str) -> None:
    credentials = {"email": email, "password": password}
    register = await client.post("/api/auth/register", json=credentials)
    if register.status_code not in {201, 409}:
        raise SystemExit(f"register failed: {register.status_code} {register.text}")
    login = await client.post("/api/auth/login", json=credentials)
    if login.status_code != 200:
        raise SystemExit(f"login failed: {login.status_code} {login.text}")
    token = login.json()["session"]["access_token"]
    client.headers["Authorization"] = f"Bearer {token}"


async def run(args: argparse.Namespace) -> int:
    start = date.today() + timedelta(days=30)
    brief = {
        "name": f"Smoke trip to {args.destination}",
        "destination": args.destination,
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=max(args.days, 2) - 1)).isoformat(),
        "adults_count": 2,
        "children_count": 1,
        "travel_style": args.style,
    }

    async with httpx.AsyncClient(base_url=args.base_url.rstrip("/"), timeout=10) as client:
        await _ensure_session(client, args.email, args.password)
        async with GenerationStatusPoller(
            client,
            interval=args.interval,
            timeout=args.timeout,
            on_update=_print_update,
        ) as poller:
            job_id = await poller.submit(brief)
            print(f"job {job_id} submitted")
            result = await poller.wait()

        if result.timed_out:
            print("generation did not finish before the timeout")
            return 1
        if result.error:
            print(f"polling stopped: {result.error} ({result.http_status})")
            return 1
        if not result.completed:
            print(f"generation failed: {result.last_status.error_message}")
            return 1

        detail = await client.get(f"/api/plans/{result.last_status.plan_id}")
        detail.raise_for_status()
        summary = detail.json()["summary"]
        print(
            "plan ready: "
            f"{summary['total_days']} days, "
            f"{summary['total_activities']} activities, "
            f"estimated cost {summary['estimated_total_cost']}"
        )
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Smoke test: register, generate a plan and poll until it settles.",
    )
    parser.add_argument("--base-url", default=os.getenv("BASE_URL", "http://127.0.0.1:8000"))
    parser.add_argument("--email", default=os.getenv("SMOKE_EMAIL", "smoke@example.com"))
    parser.add_argument("--password", default=os.getenv("SMOKE_PASSWORD", "smoke-pass-123"))
    parser.add_argument("--destination", default=os.getenv("SMOKE_DESTINATION", "Paris"))
    parser.add_argument("--days", type=int, default=int(os.getenv("SMOKE_DAYS", "3")))
    parser.add_argument(
        "--style",
        choices=["active", "relaxation", "flexible"],
        default=None,
    )
    parser.add_argument("--interval", type=float, default=2.0)
    parser.add_argument("--timeout", type=float, default=120.0)
    return asyncio.run(run(parser.parse_args()))


if __name__ == "__main__":
    raise SystemExit(main())
