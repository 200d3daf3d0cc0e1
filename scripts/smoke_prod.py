#!/usr/bin/env python3
"""Read-only smoke test against a running API. Verifies /health and the main authenticated reads.

Run with: python scripts/smoke_prod.py
Env:
  API_BASE        default http://localhost:8000
  SMOKE_TOKEN     JWT for an existing user (required in production)
  SMOKE_ACTOR_ID  user id for the "Bearer actor:<id>" form (non-production only)
  SMOKE_LOG_DIR   directory for smoke_prod.log, default logs; empty for console only
"""

import logging
import os
import sys
from pathlib import Path

import requests

API_BASE = os.getenv("API_BASE", "http://localhost:8000").rstrip("/")

log = logging.getLogger("scripts.smoke_prod")


def configure_logging(log_dir: str | Path | None = None) -> None:
    """Console output plus a run log in log_dir. Idempotent; the logger does not propagate to root."""
    if log.handlers:
        return
    target = os.getenv("SMOKE_LOG_DIR", "logs") if log_dir is None else log_dir
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if target:
        run_dir = Path(target)
        run_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(run_dir / "smoke_prod.log", encoding="utf-8"))
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(message)s")
    for handler in handlers:
        handler.setFormatter(fmt)
        log.addHandler(handler)
    log.setLevel(logging.INFO)
    log.propagate = False


# (path, keys the JSON body must carry)
AUTHED_CHECKS: list[tuple[str, set[str]]] = [
    ("/search/pods?page=1&page_size=5", {"rows", "total_count", "total_pages", "current_page"}),
    ("/search/pods?is_history=true&page=1&page_size=5", {"rows", "total_count"}),
    ("/search/options?field=org", {"options"}),
    ("/engineers", {"engineers"}),
    ("/pods/active", {"pods", "filters"}),
    ("/notifications?page_size=1", {"notifications", "unread_count"}),
    ("/transactions?page_size=1", {"transactions", "total_count"}),
]


def _auth_header() -> str | None:
    token = os.getenv("SMOKE_TOKEN", "").strip()
    if token:
        return f"Bearer {token}"
    actor = os.getenv("SMOKE_ACTOR_ID", "").strip()
    return f"Bearer actor:{actor}" if actor else None


def _get(path: str, auth: str | None = None) -> requests.Response:
    headers = {"Authorization": auth} if auth else {}
    return requests.get(f"{API_BASE}{path}", headers=headers, timeout=30)


def main() -> int:
    failures: list[str] = []

    log.info("GET /health ...")
    try:
        r = _get("/health")
    except requests.RequestException as e:
        log.error("/health => %s", e)
        return 1
    if r.status_code != 200 or not r.json().get("ok"):
        log.error("/health => %s %s", r.status_code, r.text[:200])
        return 1
    log.info("   ok (version=%s)", r.json().get("version"))

    log.info("GET /search/pods without auth must be 401 ...")
    r = _get("/search/pods")
    if r.status_code != 401:
        failures.append(f"/search/pods unauthenticated => {r.status_code}")

    auth = _auth_header()
    if auth is None:
        log.warning("SMOKE_TOKEN / SMOKE_ACTOR_ID not set; skipping authenticated checks")
    else:
        for path, keys in AUTHED_CHECKS:
            log.info("GET %s ...", path)
            try:
                r = _get(path, auth)
            except requests.RequestException as e:
                failures.append(f"{path} => {e}")
                continue
            if r.status_code != 200:
                failures.append(f"{path} => {r.status_code} {r.text[:200]}")
                continue
            missing = keys - set(r.json())
            if missing:
                failures.append(f"{path} => missing keys {sorted(missing)}")

    if failures:
        for f in failures:
            log.error("FAIL: %s", f)
        return 1
    log.info("smoke ok")
    return 0


if __name__ == "__main__":
    configure_logging()
    sys.exit(main())
