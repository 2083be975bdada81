"""Drive a running backend with entries, exits and client reservations."""

import argparse
import random
import string
import requests

BACKEND_URL = "http://127.0.0.1:8080/api/v1"
VEHICLE_TYPES = ["auto", "pickup", "motorcycle"]


def random_plate():
    letters = "".join(random.choices(string.ascii_uppercase, k=3))
    return f"{letters}-{random.randint(100, 9999)}"


def first_lot_id(base):
    resp = requests.get(f"{base}/lots", timeout=10)
    resp.raise_for_status()
    lots = resp.json()
    if not lots:
        resp = requests.post(f"{base}/lots", json={"name": "Simulated Lot"}, timeout=10)
        resp.raise_for_status()
        return resp.json()["id"]
    return lots[0]["id"]


def simulate_entry(base, lot_id, employee):
    resp = requests.get(f"{base}/lots/{lot_id}/spaces/next-free", timeout=10)
    if resp.status_code != 200:
        print(f"⚠️  No free space: {resp.json().get('detail')}")
        return None
    space = resp.json()
    plate = random_plate()
    body = {"vehicle_plate": plate, "vehicle_type": random.choice(VEHICLE_TYPES), "employee_id": employee}
    resp = requests.post(f"{base}/lots/{lot_id}/spaces/{space['id']}/entry", json=body, timeout=10)
    print(f"🚗 ENTRY {plate} → #{space['number']} HTTP {resp.status_code}")
    return plate if resp.status_code == 201 else None


def simulate_exit(base, lot_id, plate, employee, discount_code=None):
    body = {"vehicle_plate": plate, "employee_id": employee}
    if discount_code:
        body["discount_code"] = discount_code
    resp = requests.post(f"{base}/lots/{lot_id}/exit-by-plate", json=body, timeout=10)
    data = resp.json()
    fee = data.get("fee", {}).get("final_fee") if resp.status_code == 200 else data.get("detail")
    print(f"🏁 EXIT {plate} HTTP {resp.status_code}: {fee}")


def simulate_reservation(base, lot_id, client_id, accept=True):
    body = {"client_id": client_id, "vehicle_plate": random_plate()}
    resp = requests.post(f"{base}/lots/{lot_id}/client-reservations", json=body, timeout=10)
    print(f"📅 REQUEST by {client_id} HTTP {resp.status_code}")
    if resp.status_code != 201:
        return
    space_id = resp.json()["id"]
    action = "accept" if accept else "reject"
    resp = requests.post(f"{base}/lots/{lot_id}/client-reservations/{space_id}/{action}", timeout=10)
    print(f"   owner {action} HTTP {resp.status_code}: {resp.json().get('client_reservation_status')}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Simulate parking traffic against the backend")
    parser.add_argument("--url", default=BACKEND_URL)
    parser.add_argument("--lot", default=None, help="Lot id (default: first lot, created if none)")
    parser.add_argument("--vehicles", type=int, default=5)
    parser.add_argument("--reservations", type=int, default=2)
    parser.add_argument("--employee", default="EMP-SIM")
    parser.add_argument("--discount-code", default=None)
    args = parser.parse_args()

    lot_id = args.lot or first_lot_id(args.url)
    print(f"🅿️  Lot {lot_id}")

    parked = [p for p in (simulate_entry(args.url, lot_id, args.employee) for _ in range(args.vehicles)) if p]
    for i in range(args.reservations):
        simulate_reservation(args.url, lot_id, f"client-{i + 1}", accept=(i % 2 == 0))
    for plate in parked:
        simulate_exit(args.url, lot_id, plate, args.employee, args.discount_code)
