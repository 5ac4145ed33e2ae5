"""
Restart persistence check.

Creates a pricing rule, restarts the server and confirms the rule is still there.
"""

import time
import subprocess
import httpx
import sys
import os
import signal

from courier_billing.app.core.jwt import create_access_token

BASE_URL = "http://127.0.0.1:8000"
API_PREFIX = "/v1"
SERVER_CMD = [sys.executable, "-m", "uvicorn", "courier_billing.app.main:app", "--host", "127.0.0.1", "--port", "8000"]


def wait_for_server(retries=10, delay=2):
    url = f"{BASE_URL}/health"
    print(f"Waiting for server at {url}...")
    for _ in range(retries):
        try:
            resp = httpx.get(url)
            if resp.status_code == 200:
                print("✅ Server is up!")
                return True
        except httpx.ConnectError:
            pass
        time.sleep(delay)
    print("❌ Server failed to start.")
    return False


def run_verification():
    token = create_access_token(data={"sub": "persistence_check", "user_id": 1, "role": "ADMIN"})
    headers = {"Authorization": f"Bearer {token}"}
    rule_name = f"Persistence check {int(time.time())}"

    print("\n--- [Step 1] Starting Server (Initial) ---")
    proc = subprocess.Popen(
        SERVER_CMD,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env={**os.environ, "DB_ECHO": "True"}
    )

    try:
        if not wait_for_server():
            server_logs = proc.communicate(timeout=2)
            print("Server Stdout:", server_logs[0].decode())
            print("Server Stderr:", server_logs[1].decode())
            raise RuntimeError("Server start failed")

        print("\n--- [Step 2] Creating Pricing Rule ---")
        resp = httpx.post(
            f"{BASE_URL}{API_PREFIX}/pricing/rules",
            json={"name": rule_name, "rule_type": "WEEKEND_SURCHARGE", "value": "11.00", "active": False},
            headers=headers,
        )
        if resp.status_code != 201:
            print(f"❌ Rule creation failed: {resp.status_code} {resp.text}")
            raise RuntimeError("Rule creation failed")
        rule_id = resp.json()["id"]
        print(f"✅ Created rule {rule_id}")

    finally:
        print("\n--- [Step 3] Stopping Server ---")
        proc.send_signal(signal.SIGTERM)
        proc.wait()

    time.sleep(2)  # Wait for port release

    print("\n--- [Step 4] Restarting Server (Verification) ---")
    proc2 = subprocess.Popen(SERVER_CMD, stdout=subprocess.PIPE, stderr=subprocess.PIPE)

    try:
        if not wait_for_server():
            raise RuntimeError("Server restart failed")

        print("\n--- [Step 5] Reading Rule Back ---")
        resp = httpx.get(f"{BASE_URL}{API_PREFIX}/pricing/rules/{rule_id}", headers=headers)
        if resp.status_code == 200 and resp.json()["name"] == rule_name:
            print("✅ Rule persisted across restart")
        else:
            print(f"❌ Rule missing after restart: {resp.status_code} {resp.text}")
            raise RuntimeError("Rule lost after restart")

    finally:
        print("\n--- [Step 6] Stopping Server ---")
        proc2.send_signal(signal.SIGTERM)
        proc2.wait()


if __name__ == "__main__":
    run_verification()
