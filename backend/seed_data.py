"""Seed a handful of sample savings goals (and deposits) via the API."""

import os
import sys

import httpx

API_BASE = os.environ.get("API_BASE", "http://localhost:8000")

SAMPLE_GOALS = [
    {"name": "Emergency Fund", "category": "Safety", "targetAmount": "3000.00", "deadline": "2026-12-31", "deposits": ["500.00", "250.00"]},
    {"name": "Japan Trip", "category": "Travel", "targetAmount": "1200.00", "deadline": "2026-11-10", "deposits": ["400.00"]},
    {"name": "New Laptop", "category": "Tech", "targetAmount": "900.00", "deadline": "2027-03-01", "deposits": ["900.00"]},
    {"name": "Concert Tickets", "category": "Fun", "targetAmount": "180.00", "deadline": "2026-09-30", "deposits": ["60.00"]},
    {"name": "Bike Repair", "category": "Transport", "targetAmount": "150.00", "deadline": "2027-06-15", "deposits": []},
]


def main():
    print(f"Seeding goals into {API_BASE} ...")
    success = 0
    errors = 0

    try:
        with httpx.Client(base_url=API_BASE, timeout=10) as client:
            for sample in SAMPLE_GOALS:
                payload = {key: value for key, value in sample.items() if key != "deposits"}
                resp = client.post("/goals", json=payload)
                if resp.status_code != 201:
                    errors += 1
                    print(f"  FAIL ({resp.status_code}): {resp.text}")
                    continue

                goal = resp.json()
                success += 1
                print(f"  OK: {goal['name']:16s} target ${goal['target_amount']:>8s}  due {goal['deadline']}")

                for amount in sample["deposits"]:
                    dep = client.post(f"/goals/{goal['id']}/deposits", json={"amount": amount})
                    if dep.status_code != 200:
                        errors += 1
                        print(f"    FAIL deposit ({dep.status_code}): {dep.text}")
                        continue
                    print(f"    + ${amount:>8s}  -> saved ${dep.json()['saved_amount']} ({dep.json()['status']})")
    except httpx.HTTPError as exc:
        print(f"ERROR: could not reach {API_BASE}: {exc}")
        sys.exit(1)

    print(f"\nDone! {success} goals created, {errors} errors.")


if __name__ == "__main__":
    main()
