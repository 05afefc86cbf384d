#!/usr/bin/env python3
"""
One-time Gmail authorization. Opens a browser for the OAuth consent screen and
writes the token file (TOKEN_PATH) used by scheduled runs.

Usage (from backend/):
  ./.venv/bin/python scripts/authorize_gmail.py
"""

import os
import sys

_script_dir = os.path.dirname(os.path.abspath(__file__))
_backend = os.path.dirname(_script_dir)
if _backend not in sys.path:
    sys.path.insert(0, _backend)

from recruit_triage.config import configure_logging, load_settings
from recruit_triage.gmail_service import get_gmail_service


def main() -> int:
    settings = load_settings()
    configure_logging(settings)
    service = get_gmail_service(settings, allow_interactive_oauth=True)
    profile = service.users().getProfile(userId="me").execute()
    print(f"Authorized Gmail for {profile.get('emailAddress')}. Token saved to {settings.token_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
