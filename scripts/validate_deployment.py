"""
Pre-Deploy and Smoke Test Script.

Runs the application in-process with TestClient and checks:
1. Health check
2. Price quote for a known scenario
3. Delivery invoice creation and lookup

Uses the configured DATABASE_URL; point it at a scratch database.
"""

import sys
import uuid

from fastapi.testclient import TestClient
from courier_billing.app.main import app
from courier_billing.app.core.jwt import create_access_token


def print_step(step, msg):
    print(f"[{step}] {msg}")


def fail(msg):
    print(f"❌ FAILURE: {msg}")
    sys.exit(1)


def success(msg):
    print(f"✅ {msg}")


def main():
    print("🚀 Starting Deployment Validation...")

    with TestClient(app) as client:
        # 1. Health Check
        print_step("PRE-DEPLOY", "Checking /health...")
        response = client.get("/health")
        if response.status_code != 200:
            fail(f"Health check returned {response.status_code}")
        success("Health check passed")

        # 2. Auth
        print_step("AUTH", "Generating Finance Token...")
        token = create_access_token(data={"sub": "deploy_bot", "role": "FINANCE", "user_id": 1})
        headers = {"Authorization": f"Bearer {token}"}

        # 3. Quote
        print_step("PRICING", "Quoting Saturday 02:00 urgent delivery...")
        response = client.post(
            "/v1/pricing/calculate",
            json={
                "customer_type": "MEDICAL_FACILITY",
                "priority_level": "URGENT",
                "distance_km": 60,
                "weight_kg": 12,
                "delivery_time": "2024-06-01T02:00:00",
            },
            headers=headers,
        )
        if response.status_code != 200:
            fail(f"Pricing returned {response.status_code}: {response.text}")
        quote = response.json()
        print(f"   subtotal={quote['subtotal']} tax={quote['tax_amount']} total={quote['total']}")
        success("Pricing reachable")

        # 4. Invoice
        print_step("BILLING", "Invoicing a delivery...")
        response = client.post(
            "/v1/invoices/deliveries",
            json={
                "customer_id": str(uuid.uuid4()),
                "customer_name": "Deploy Smoke Test",
                "order_number": f"SMOKE-{uuid.uuid4().hex[:6].upper()}",
                "distance_km": 12.5,
            },
            headers=headers,
        )
        if response.status_code != 201:
            fail(f"Invoice creation returned {response.status_code}: {response.text}")
        invoice = response.json()

        response = client.get(f"/v1/invoices/number/{invoice['invoice_number']}", headers=headers)
        if response.status_code != 200 or response.json()["id"] != invoice["id"]:
            fail("Created invoice could not be read back")
        success(f"Invoice {invoice['invoice_number']} created, total {invoice['total_amount']}")

    print("\n🎉 Deployment validation passed")


if __name__ == "__main__":
    main()
