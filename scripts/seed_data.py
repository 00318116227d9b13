"""Seed a running scratchpad session with demo folders and notes.

Drives the session API the way the editor would: select a folder, create a
note, type into it, blur the editor (so the title is derived), then save.

Usage:
    python scripts/seed_data.py [--base-url http://localhost:8000]
"""

from __future__ import annotations

import argparse
import sys
import time

import requests

DEFAULT_BASE_URL = "http://localhost:8000"
TIMEOUT = 10

# Each entry: (folder name or None for the default folder, note text)
NOTES: list[tuple[str | None, str]] = [
    (None, "Welcome\nThis is your scratchpad. Notes save automatically."),
    (None, "Shortcuts\nCtrl+N new note, Ctrl+S save, Ctrl+W close tab."),
    ("Work", "Standup\nYesterday: storage server. Today: tab switching."),
    ("Work", "Release checklist\n- bump version\n- tag\n- publish"),
    ("Reading", "Papers to read\nDesigning Data-Intensive Applications, ch. 5"),
]


def check_health(base_url: str) -> bool:
    """Verify the session API is reachable and loaded."""
    try:
        resp = requests.get(f"{base_url}/health", timeout=TIMEOUT)
        data = resp.json()
        return data.get("status") == "healthy" and data.get("loaded") is True
    except Exception as e:
        print(f"  Health check failed: {e}")
        return False


def send_command(base_url: str, command: dict) -> dict:
    """Dispatch a single session command and return the response."""
    resp = requests.post(f"{base_url}/commands", json=command, timeout=TIMEOUT)
    resp.raise_for_status()
    return resp.json()


def main() -> None:
    """Create the demo folders, then every demo note in its folder."""
    parser = argparse.ArgumentParser(description="Seed demo notes")
    parser.add_argument(
        "--base-url",
        default=DEFAULT_BASE_URL,
        help=f"Session API base URL (default: {DEFAULT_BASE_URL})",
    )
    args = parser.parse_args()
    base_url = args.base_url.rstrip("/")

    print(f"\n  Seeding notes via {base_url}")
    print("  " + "=" * 58)

    if not check_health(base_url):
        print("  FAIL: Session API is not healthy. Is scratchpad.main running?")
        sys.exit(1)
    print("  OK: Session API is healthy.\n")

    folder_ids: dict[str, str] = {}
    for name in sorted({f for f, _ in NOTES if f}):
        result = send_command(base_url, {"type": "new_folder", "name": name})
        folder_ids[name] = result["folder"]["id"]
        print(f"  Folder  {name:<10} -> {folder_ids[name]}")

    start = time.time()
    for i, (folder, text) in enumerate(NOTES, 1):
        send_command(
            base_url,
            {"type": "select_folder", "folder_id": folder_ids.get(folder, "default")},
        )
        created = send_command(base_url, {"type": "new_note"})
        if not created["ok"]:
            print(f"  [{i}/{len(NOTES)}] ERROR: note creation failed")
            continue
        send_command(base_url, {"type": "edit", "content": text})
        send_command(base_url, {"type": "blur", "text": text})
        saved = send_command(base_url, {"type": "save"})
        title = text.split("\n", 1)[0]
        status = "saved" if saved["ok"] else "save failed"
        print(f"  [{i}/{len(NOTES)}] {title:<20} {created['note']['id']} ({status})")

    print("  " + "=" * 58)
    print(f"  Done! {len(NOTES)} notes in {len(folder_ids) + 1} folders "
          f"({time.time() - start:.1f}s).")
    print()


if __name__ == "__main__":
    main()
