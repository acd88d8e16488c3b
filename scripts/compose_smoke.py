#!/usr/bin/env python3
from __future__ import annotations

import json
import os
import sys
import time
from urllib.error import URLError
from urllib.request import Request, urlopen


def main() -> int:
    base_url = os.getenv("STUDYRAG_API_URL", "http://localhost:8000").rstrip("/")
    user_id = os.getenv("STUDYRAG_SMOKE_USER", "default-user")
    try:
        with urlopen(f"{base_url}/healthz", timeout=5) as r:
            print("/healthz:", r.read().decode("utf-8"))
        # Give the service a moment to finish boot
        time.sleep(0.5)
        with urlopen(f"{base_url}/healthz/ready", timeout=5) as r2:
            print("/healthz/ready:", r2.read().decode("utf-8"))
        with urlopen(f"{base_url}/api/documents?userId={user_id}", timeout=5) as r3:
            listing = json.loads(r3.read().decode("utf-8"))
            print("/api/documents:", len(listing.get("documents", [])), "document(s)")
        probe = Request(f"{base_url}/api/chat", method="GET")
        try:
            urlopen(probe, timeout=5)
        except URLError as exc:
            if getattr(exc, "code", None) != 405:
                raise
            print("/api/chat GET: 405 as expected")
        else:
            print("/api/chat accepted GET; expected 405", file=sys.stderr)
            return 1
    except (URLError, Exception) as exc:
        print(f"Compose smoke failed: {exc}", file=sys.stderr)
        return 1
    print("Compose smoke passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
