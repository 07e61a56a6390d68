import time
import subprocess
import httpx
import sys
import os
import signal

BASE_URL = "http://127.0.0.1:8000"
API_PREFIX = "/v1"
SERVER_CMD = [sys.executable, "-m", "uvicorn", "parcelx.app.main:app", "--host", "127.0.0.1", "--port", "8000"]

def wait_for_server(retries=10, delay=2):
    url = f"{BASE_URL}/health"
    print(f"Waiting for server at {url}...")
    for i in range(retries):
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
    # 1. Start Server (First Run)
    print("\n--- [Step 1] Starting Server (Initial) ---")
    proc = subprocess.Popen(
        SERVER_CMD,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env={**os.environ, "DB_ECHO": "True"} # Enable echo to see SQL
    )

    try:
        if not wait_for_server():
            server_logs = proc.communicate(timeout=2)
            print("Server Stdout:", server_logs[0].decode())
            print("Server Stderr:", server_logs[1].decode())
            raise Exception("Server start failed")

        # 2. Create Parcel
        print("\n--- [Step 2] Creating Parcel (Persistence Test) ---")
        parcel_payload = {
            "createdByEmail": "persist@test.com",
            "title": "Persistence check",
            "weight": 1,
        }
        resp = httpx.post(f"{BASE_URL}{API_PREFIX}/parcels", json=parcel_payload)

        if resp.status_code == 201:
            parcel_id = resp.json()["data"]["id"]
            print(f"✅ Parcel Created: {parcel_id}")
        else:
            print(f"❌ Parcel Creation Failed: {resp.status_code} {resp.text}")
            raise Exception("Parcel creation failed")

        # 3. Add Tracking Entry
        resp = httpx.post(
            f"{BASE_URL}{API_PREFIX}/parcels/{parcel_id}/tracking",
            json={"status": "Picked Up", "location": "Warehouse 1"},
        )
        if resp.status_code != 201:
            raise Exception(f"Tracking append failed: {resp.status_code} {resp.text}")
        print("✅ Tracking Entry Recorded")

    finally:
        print("\n--- [Step 3] Stopping Server ---")
        proc.send_signal(signal.SIGTERM)
        proc.wait()

    time.sleep(2) # Wait for port release

    # 4. Restart Server
    print("\n--- [Step 4] Restarting Server (Verification) ---")
    proc2 = subprocess.Popen(
        SERVER_CMD,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE
    )

    try:
        if not wait_for_server():
            raise Exception("Server restart failed")

        # 5. Fetch Parcel
        print("\n--- [Step 5] Fetching Parcel (Post-Restart) ---")
        resp = httpx.get(f"{BASE_URL}{API_PREFIX}/parcels/{parcel_id}")

        if resp.status_code == 200:
            print("✅ Parcel Persisted")
            print(resp.json())
        else:
            print(f"❌ Fetch Failed (Persistence Issue?): {resp.status_code} {resp.text}")
            raise Exception("Parcel missing after restart")

        # 6. Verify Tracking History
        print("\n--- [Step 6] Verifying Tracking History ---")
        resp = httpx.get(f"{BASE_URL}{API_PREFIX}/parcels/{parcel_id}/tracking")
        if resp.status_code == 200 and resp.json()["total"] == 1:
            print("✅ Tracking History Persisted")
        else:
            print(f"❌ Tracking Check Failed: {resp.status_code} {resp.text}")

    finally:
        print("\n--- [Step 7] Stopping Server ---")
        proc2.send_signal(signal.SIGTERM)
        proc2.wait()

if __name__ == "__main__":
    run_verification()
