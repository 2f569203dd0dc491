#!/usr/bin/env python3
"""PowerTable CI helper.

Runs the unit and API test suites (optionally the live uvicorn smoke run) and
produces `ci_report.json`.
"""

from __future__ import annotations

import argparse
import json
import subprocess
import sys
import time
from datetime import datetime
from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[1]


def run_command(cmd: list[str], description: str, *, cwd: Path, timeout: int = 900):
    print(f"\n{'=' * 60}")
    print(f"[RUN] {description}")
    print(f"[CMD] {' '.join(cmd)}")
    print(f"{'=' * 60}")

    start_time = time.time()
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        duration = time.time() - start_time
        print(f"[FAIL] {description} (timeout after {timeout}s)")
        return False, f"Command timeout after {timeout}s", duration
    except OSError as e:
        duration = time.time() - start_time
        print(f"[FAIL] {description} (error: {e})")
        return False, str(e), duration

    duration = time.time() - start_time
    if result.returncode == 0:
        print(f"[OK] {description} ({duration:.2f}s)")
        return True, result.stdout, duration

    print(f"[FAIL] {description} ({duration:.2f}s)")
    if result.stdout:
        print("STDOUT:\n" + result.stdout)
    if result.stderr:
        print("STDERR:\n" + result.stderr)
    return False, result.stderr or result.stdout, duration


def _steps(live: bool) -> list[tuple[list[str], str]]:
    py = sys.executable
    steps = [
        ([py, "-m", "pytest", "tests/unit", "-v"], "Backend: pytest tests/unit"),
        ([py, "-m", "pytest", "tests/pytest", "-v"], "Backend: pytest tests/pytest"),
    ]
    if live:
        steps.append(([py, "scripts/live_api_smoke.py"], "Live: uvicorn smoke"))
    return steps


def generate_report(results: list[dict], report_path: Path) -> dict:
    passed = sum(1 for r in results if r["success"])
    report = {
        "timestamp": datetime.now().isoformat(),
        "total_duration": sum(r["duration"] for r in results),
        "results": results,
        "summary": {
            "total_tests": len(results),
            "passed": passed,
            "failed": len(results) - passed,
            "success_rate": f"{(passed / len(results) * 100):.1f}%" if results else "n/a",
        },
    }
    with open(report_path, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2, ensure_ascii=False)
    return report


def main() -> bool:
    parser = argparse.ArgumentParser(description="Run the PowerTable test suites.")
    parser.add_argument("--live", action="store_true", help="also start uvicorn and run the live smoke test")
    parser.add_argument("--report", default="ci_report.json")
    args = parser.parse_args()

    print(f"\n[CI] START {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    results: list[dict] = []
    for cmd, name in _steps(args.live):
        success, _, duration = run_command(cmd, name, cwd=REPO_ROOT)
        results.append({"name": name, "success": success, "duration": duration})

    report = generate_report(results, Path(args.report))
    summary = report["summary"]

    print(f"\n{'=' * 80}")
    print("CI REPORT")
    print(f"{'=' * 80}")
    print(f"Total duration: {report['total_duration']:.2f}s")
    print(f"Passed: {summary['passed']}")
    print(f"Failed: {summary['failed']}")
    print(f"Success rate: {summary['success_rate']}")

    if summary["failed"]:
        print("\nFailed steps:")
        for result in results:
            if not result["success"]:
                print(f"  - {result['name']}")

    print(f"\nReport: {args.report}")
    if summary["failed"] == 0:
        print("\n[CI] SUCCESS")
        return True
    print("\n[CI] FAILED")
    return False


if __name__ == "__main__":
    sys.exit(0 if main() else 1)
