# backend/client.py
import os
import requests

API = os.getenv("API_URL", "http://localhost:8080")

def test_health():
    r = requests.get(f"{API}/health")
    print("Health:", r.status_code, r.json())

def test_generate_query():
    r = requests.post(f"{API}/generate-query", json={"prompt": "Show the average salary per department"})
    body = r.json()
    print("Generate query:", r.status_code)
    if "error" in body:
        print("  error:", body["error"])
        return
    print("  sql:", body["sql"])
    print("  rows:", len(body["data"]))
    print("  chart:", body["chartConfig"].get("labels"), body["chartConfig"]["datasets"][0]["data"])

def test_rejected_query():
    r = requests.post(f"{API}/generate-query", json={"prompt": "drop the sales table"})
    print("Rejected query:", r.status_code, r.json())

def test_wrong_method():
    r = requests.get(f"{API}/generate-query")
    print("GET generate-query:", r.status_code, r.json())

if __name__ == "__main__":
    print("--- Testing QueryChart backend ---")
    test_health()
    test_wrong_method()
    test_generate_query()
    test_rejected_query()
