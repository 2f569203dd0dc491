"""Starts the API with uvicorn and walks a .ptab file through a full editing cycle."""

from __future__ import annotations

import argparse
import subprocess
import sys
import time
from pathlib import Path

import httpx


ROOT = Path(__file__).resolve().parents[1]


def wait_http_ok(url: str, *, timeout_s: float) -> None:
    deadline = time.time() + timeout_s
    last_err: str | None = None
    while time.time() < deadline:
        try:
            r = httpx.get(url, timeout=2.0)
            if r.status_code == 200:
                return
            last_err = f"HTTP {r.status_code}"
        except httpx.HTTPError as e:
            last_err = str(e)
        time.sleep(0.4)
    raise RuntimeError(f"Timeout waiting for {url}: {last_err}")


def _check(response: httpx.Response, step: str) -> dict:
    print(f"{step:<20} {response.status_code}")
    response.raise_for_status()
    return response.json()


def run_cycle(base_url: str, ptab: Path) -> None:
    with httpx.Client(base_url=base_url, timeout=30.0) as client:
        with ptab.open("rb") as f:
            created = _check(client.post("/tables/load", files={"file": (ptab.name, f, "text/plain")}), "load")
        table_id = created["id"]
        if created["issues"]:
            print("issues:", ", ".join(created["issues"]))

        fill = _check(client.post(f"/tables/{table_id}/smart-fill"), "smart-fill")
        print(" ", fill["message"])
        resolve = _check(client.post(f"/tables/{table_id}/resolve-conflicts"), "resolve-conflicts")
        print(" ", resolve["message"])
        _check(client.post(f"/tables/{table_id}/undo"), "undo")
        _check(client.post(f"/tables/{table_id}/redo"), "redo")

        exported = client.get(f"/tables/{table_id}/export")
        print(f"{'export':<20} {exported.status_code}")
        exported.raise_for_status()
        print(exported.text)

        _check(client.delete(f"/tables/{table_id}"), "delete")


def main() -> int:
    parser = argparse.ArgumentParser(description="Live smoke test of the PowerTable API.")
    parser.add_argument("ptab", nargs="?", default=str(ROOT / "tests" / "sample.ptab"))
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--timeout", type=float, default=10.0)
    args = parser.parse_args()

    ptab = Path(args.ptab)
    if not ptab.exists():
        print(f"Missing file: {ptab}", file=sys.stderr)
        return 2

    api_cmd = [
        sys.executable,
        "-m",
        "uvicorn",
        "api.main:app",
        "--host",
        "127.0.0.1",
        "--port",
        str(args.port),
    ]
    base_url = f"http://127.0.0.1:{args.port}"

    proc: subprocess.Popen[object] | None = None
    try:
        proc = subprocess.Popen(api_cmd, cwd=str(ROOT), stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        wait_http_ok(f"{base_url}/health", timeout_s=args.timeout)
        run_cycle(base_url, ptab)
        return 0
    except (httpx.HTTPError, RuntimeError) as e:
        print(f"SMOKE FAILED: {e}", file=sys.stderr)
        return 1
    finally:
        if proc is not None and proc.poll() is None:
            proc.kill()


if __name__ == "__main__":
    raise SystemExit(main())
