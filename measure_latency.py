#!/usr/bin/env python3
"""
Latency probe for the endpoints the dashboard hits on page load

    python measure_latency.py [--base URL] [--runs N] [--token TOKEN]

Seeds a throwaway patient with a few logs on first use, then times GET /patients,
/logs/<id>, /notes/<id> and /summary/<id> through one keep-alive session.
"""
import argparse
import statistics
import sys
import time

import requests

PATIENT_ID = "latency-probe"

SEED_LOGS = [
    {"mood": "calm", "sleepStart": "21:30", "sleepEnd": "06:15"},
    {"behavior": "outburst", "consequence": "redirected"},
    {"hydration": "drank", "food": "full", "meds": "given"},
]


def seed(session: requests.Session, base: str):
    try:
        created = session.post(f"{base}/patients", json={"id": PATIENT_ID, "name": "Latency Probe"}, timeout=5)
        # 409 means an earlier run already created and seeded it
        if created.status_code != 201:
            if created.status_code != 409:
                print(f"patient setup returned {created.status_code}")
            return
        for entry in SEED_LOGS:
            session.post(f"{base}/logs/{PATIENT_ID}", json=entry, timeout=5)
    except requests.RequestException as e:
        print(f"seeding failed ({e}); timing anyway")


def time_endpoint(session: requests.Session, url: str, runs: int):
    """Durations (ms) of the successful calls, plus how many failed"""
    samples, failures = [], 0
    for _ in range(runs):
        started = time.perf_counter()
        try:
            ok = session.get(url, timeout=5).ok
        except requests.RequestException:
            ok = False
        if ok:
            samples.append((time.perf_counter() - started) * 1000)
        else:
            failures += 1
    return samples, failures


def describe(samples):
    p95 = statistics.quantiles(samples, n=20)[18] if len(samples) > 1 else samples[0]
    return (
        f"mean {statistics.mean(samples):7.2f}  median {statistics.median(samples):7.2f}  "
        f"p95 {p95:7.2f}  max {max(samples):7.2f}"
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Time the CareCompass page-load endpoints")
    parser.add_argument("--base", default="http://127.0.0.1:3000/api")
    parser.add_argument("--runs", type=int, default=10)
    parser.add_argument("--token", help="session token, needed when REQUIRE_AUTH is on")
    args = parser.parse_args(argv)

    session = requests.Session()
    if args.token:
        session.headers["Authorization"] = f"Bearer {args.token}"
    base = args.base.rstrip("/")
    seed(session, base)

    any_ok = False
    print(f"{'endpoint':<24}{'ms':>8}")
    for path in ("/patients", f"/logs/{PATIENT_ID}", f"/notes/{PATIENT_ID}", f"/summary/{PATIENT_ID}"):
        samples, failures = time_endpoint(session, base + path, args.runs)
        if samples:
            any_ok = True
            line = describe(samples)
        else:
            line = "all calls failed"
        print(f"GET {path:<20} {line}  errors {failures}/{args.runs}")
    return 0 if any_ok else 1


if __name__ == "__main__":
    sys.exit(main())
