import os

import requests

base_url = os.getenv("SHOPFRONT_URL", "http://localhost:8080")
url = f"{base_url}/create-checkout-session"
payload = [
    {"name": "Test Product", "price": "19.99", "qty": 2},
    {"name": "Second Product", "price": 250, "qty": 1},
]

try:
    print(f"Sending POST request to {url}...")
    response = requests.post(url, json=payload, timeout=30)
    print(f"Status Code: {response.status_code}")
    print("Response Body:")
    print(response.text)
except requests.RequestException as e:
    print(f"Error: {e}")
