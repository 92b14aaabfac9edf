"""
Door scanner: type or scan entry pass codes, one per line.
"""
import os
import requests

REQUEST_TIMEOUT_S = float(os.getenv("CHECKIN_TIMEOUT_S", "5"))


def check_in(base_url: str, headers: dict, token: str) -> str:
    """
    Sends one scanned code to the server and returns the line to print.
    """
    try:
        resp = requests.post(
            f"{base_url}/checkin",
            json={"token": token},
            headers=headers,
            timeout=REQUEST_TIMEOUT_S,
        )
    except requests.RequestException as e:
        return f"Server unreachable ({type(e).__name__}), scan again"

    if resp.status_code == 403:
        return "Access denied"
    if not resp.ok:
        return f"Error {resp.status_code}: {resp.text}"

    body = resp.json()
    who = body["participant"]["name"]
    team = body["participant"].get("team_name")
    event = body.get("event_name") or "?"
    label = f"{who} ({team})" if team else who
    if body["already_checked_in"]:
        return f"Already checked in: {label} - {event}"
    return f"Checked in: {label} - {event}"


def main() -> None:
    base_url = os.getenv("EVENTFLOW_URL", "http://localhost:8000")
    headers = {"X-API-KEY": os.getenv("ADMIN_API_KEY", "")}

    while True:
        token = input("Entry pass: ").strip()
        if token.lower() in ["quit", "exit"]:
            break
        print(check_in(base_url, headers, token))


if __name__ == "__main__":
    main()
