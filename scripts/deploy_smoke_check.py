"""Post-deploy smoke checks executed from the app container."""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from datetime import date, timedelta

from seed_demo_data import DEMO_RENTAL_ITEM_ID, DEMO_SERVICE_ITEM_ID

BASE_URL = "http://localhost:8000"


def request(
    path: str,
    *,
    method: str = "GET",
    body: dict | None = None,
    headers: dict[str, str] | None = None,
    expected: int = 200,
) -> bytes:
    payload = None
    req_headers = {"Accept": "application/json"}
    if headers:
        req_headers.update(headers)
    if body is not None:
        payload = json.dumps(body).encode("utf-8")
        req_headers["Content-Type"] = "application/json"

    request_obj = urllib.request.Request(
        f"{BASE_URL}{path}",
        data=payload,
        method=method,
        headers=req_headers,
    )
    try:
        with urllib.request.urlopen(request_obj, timeout=30) as response:
            content = response.read()
            status = response.getcode()
    except urllib.error.HTTPError as exc:  # pragma: no cover - runtime smoke script
        body_text = exc.read().decode("utf-8", errors="ignore")
        raise RuntimeError(f"{method} {path} -> {exc.code}: {body_text}") from exc

    if status != expected:
        raise RuntimeError(f"{method} {path} -> {status}, expected {expected}")
    return content


def main() -> None:
    for endpoint in ["/health", "/ready", "/docs", "/metrics"]:
        request(endpoint, expected=200)

    month = date.today().strftime("%Y-%m")
    tomorrow = (date.today() + timedelta(days=1)).isoformat()

    request(f"/api/v1/catalog/items/{DEMO_RENTAL_ITEM_ID}", expected=200)
    request(f"/api/v1/catalog/items/{DEMO_SERVICE_ITEM_ID}/staff", expected=200)
    request(f"/api/v1/availability/items/{DEMO_RENTAL_ITEM_ID}/rental?month={month}", expected=200)
    slots = json.loads(
        request(
            f"/api/v1/availability/items/{DEMO_SERVICE_ITEM_ID}/service?date={tomorrow}",
            expected=200,
        ).decode("utf-8")
    )
    if "slots" not in slots:
        raise RuntimeError("Service availability payload has no slots")

    # Incomplete proposal: rejected before anything is written.
    request(
        "/api/v1/reservations",
        method="POST",
        body={
            "item_id": str(DEMO_RENTAL_ITEM_ID),
            "selection": {"module_kind": "rental", "start_date": tomorrow, "end_date": tomorrow},
            "customer": {"name": "Smoke", "phone": ""},
        },
        expected=422,
    )

    print("Smoke checks passed.")


if __name__ == "__main__":
    main()
