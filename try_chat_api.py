import requests
import json

BASE_URL = "http://127.0.0.1:8000"

# --- scripted conversation ---
messages = [
    "I want to go to Lisbon for a long weekend",
    "We're flying in on May 1st 2026 and leaving May 4th",
    "Two of us, budget around $1800 total",
    "Mostly food, history and some art. Cultural vibe.",
]


def run_conversation():
    url = f"{BASE_URL}/api/chat"
    headers = {"Content-Type": "application/json"}
    conversation_id = None

    for message in messages:
        body = {"message": message}
        if conversation_id:
            body["conversationId"] = conversation_id

        print(f"➡️ Sending POST {url}")
        print(json.dumps(body, indent=2))

        resp = requests.post(url, headers=headers, json=body)

        print(f"\n⬅️ Status: {resp.status_code}")
        try:
            data = resp.json()
            print(json.dumps(data, indent=2))
        except ValueError:
            print(resp.text)
            return
        conversation_id = data.get("conversationId", conversation_id)
        if data.get("currentStep") == "showing_results":
            break


if __name__ == "__main__":
    run_conversation()
