#!/usr/bin/env python3
"""HTTP smoke checks for a running PrepTalk backend.

Usage:
  python scripts/smoke_test.py
  python scripts/smoke_test.py --base-url https://api.example.com --bearer-token <firebase id token>
"""

from __future__ import annotations

import argparse
import json
import os
import time
import urllib.error
import urllib.request
from typing import Any, Callable, Dict, Optional, Tuple

SAMPLE_ARTICLE = (
    "The Union Cabinet approved amendments to the inter-state river water disputes framework, "
    "proposing a single permanent tribunal with benches to replace the existing ad hoc tribunals."
)


def _request(
    method: str,
    url: str,
    *,
    json_body: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 10.0,
) -> Tuple[int, str, Dict[str, str]]:
    payload = None
    request_headers: Dict[str, str] = dict(headers or {})
    if json_body is not None:
        payload = json.dumps(json_body).encode("utf-8")
        request_headers.setdefault("Content-Type", "application/json")
    req = urllib.request.Request(url=url, data=payload, method=method.upper(), headers=request_headers)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as response:
            return int(response.getcode()), response.read().decode("utf-8", errors="replace"), dict(response.getheaders())
    except urllib.error.HTTPError as exc:
        return int(exc.code), exc.read().decode("utf-8", errors="replace"), dict(exc.headers.items())


def _json_or_empty(body: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(body or "{}")
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


class SmokeRunner:
    def __init__(self, base_url: str, timeout: float, bearer_token: str = "") -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.bearer_token = bearer_token.strip()
        self.failures = 0
        self.total = 0

    def _report(self, ok: bool, label: str, detail: str = "") -> None:
        self.total += 1
        print(f"[{'PASS' if ok else 'FAIL'}] {label}")
        if detail:
            print(f"       {detail}")
        if not ok:
            self.failures += 1

    def check(
        self,
        label: str,
        method: str,
        path: str,
        expected_status: int,
        body_check: Optional[Callable[[Dict[str, Any], Dict[str, str]], bool]] = None,
        **kwargs: Any,
    ) -> None:
        started = time.time()
        try:
            status, body, headers = _request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        except Exception as exc:
            self._report(False, label, f"request error: {exc}")
            return
        elapsed_ms = int((time.time() - started) * 1000)
        ok = status == expected_status
        if ok and body_check is not None:
            ok = bool(body_check(_json_or_empty(body), headers))
        detail = f"expected {expected_status}, got {status} ({elapsed_ms}ms)"
        preview = body.strip().replace("\n", " ")[:140]
        if preview and not ok:
            detail += f" | body: {preview}"
        self._report(ok, label, detail)

    def run(self) -> int:
        print(f"Running smoke checks against: {self.base_url}")
        print(f"Timeout per request: {self.timeout:.1f}s")
        print("")

        self.check(
            "Health check reports ok with a request id",
            "GET",
            "/healthz",
            200,
            lambda body, headers: body.get("status") == "ok" and bool(headers.get("X-Request-ID")),
        )
        self.check("Unknown route returns JSON 404", "GET", "/api/does-not-exist", 404, lambda body, _h: "error" in body)
        self.check(
            "Subscription plans are public",
            "GET",
            "/api/subscription/plans",
            200,
            lambda body, _h: [plan.get("id") for plan in body.get("plans", [])][:1] == ["free"],
        )
        self.check("Writing service info is public", "GET", "/api/writing-evaluation", 200)

        self.check("Newspaper analysis requires auth", "POST", "/api/newspaper-analysis", 401, json_body={"articleText": SAMPLE_ARTICLE})
        self.check("History requires auth", "GET", "/api/history", 401)
        self.check("Daily quiz requires auth", "POST", "/api/daily-quiz/generate", 401, json_body={"quizType": "free-daily"})
        self.check("Mock interview requires auth", "POST", "/api/mock-interview", 401, json_body={})
        self.check("Notes require auth", "GET", "/api/notes", 401)
        self.check("Checkout requires auth", "POST", "/api/subscription/checkout", 401, json_body={"tier": "practice"})
        self.check("Question upload requires auth", "POST", "/api/admin/question-upload", 401)
        self.check("Webhook rejects unsigned payloads", "POST", "/api/stripe-webhook", 400, json_body={})

        if self.bearer_token:
            auth_headers = {"Authorization": f"Bearer {self.bearer_token}"}
            self.check("Authenticated subscription lookup", "GET", "/api/subscription/current", 200, headers=auth_headers)
            self.check("Authenticated usage lookup", "GET", "/api/subscription/usage", 200, headers=auth_headers)
            self.check("Authenticated quiz catalogue", "GET", "/api/daily-quiz/types", 200, headers=auth_headers)
            self.check("Authenticated dashboard summary", "GET", "/api/dashboard/summary", 200, headers=auth_headers)
        else:
            print("")
            print("Note: Skipped authenticated checks (set PREPTALK_TEST_BEARER to enable).")

        print("")
        passed = self.total - self.failures
        print(f"Summary: {passed}/{self.total} checks passed.")
        if self.failures:
            print("Smoke test status: FAILED")
            return 1
        print("Smoke test status: PASSED")
        return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Run PrepTalk HTTP smoke checks.")
    parser.add_argument("--base-url", default="http://127.0.0.1:5000", help="Base URL for the app (default: http://127.0.0.1:5000)")
    parser.add_argument("--timeout", default=10.0, type=float, help="Request timeout in seconds")
    parser.add_argument("--bearer-token", default="", help="Optional Firebase ID token for authenticated checks")
    args = parser.parse_args()

    token = args.bearer_token.strip() or os.getenv("PREPTALK_TEST_BEARER", "").strip()
    return SmokeRunner(base_url=args.base_url, timeout=args.timeout, bearer_token=token).run()


if __name__ == "__main__":
    raise SystemExit(main())
