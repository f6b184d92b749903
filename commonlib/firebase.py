"""Firebase helpers used by the pantry service."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional
import json

import firebase_admin
from firebase_admin import credentials, firestore

CREDENTIAL_FILES = ("firebase-auth.json", "clientSecret.json")


def _load_service_account_file(path: Path) -> Optional[dict[str, Any]]:
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None
    if not isinstance(data, dict) or data.get("type") != "service_account":
        return None
    return data


def load_service_account(base_dir: Path, env: Mapping[str, str] | None = None) -> Optional[dict[str, Any]]:
    """Load Firebase service account credentials from disk or env.

    Looks at the well-known files in ``base_dir`` first, then the file named by
    ``GOOGLE_APPLICATION_CREDENTIALS`` and finally the ``FIREBASE_*`` variables.
    Returns ``None`` when nothing usable is found.
    """

    base_dir = Path(base_dir)
    env_map = dict(env or {})

    candidates = [base_dir / name for name in CREDENTIAL_FILES]
    adc_path = (env_map.get("GOOGLE_APPLICATION_CREDENTIALS") or "").strip()
    if adc_path:
        candidates.append(Path(adc_path))
    for candidate in candidates:
        data = _load_service_account_file(candidate)
        if data:
            return data

    project_id = (env_map.get("FIREBASE_PROJECT_ID") or "").strip()
    private_key = (env_map.get("FIREBASE_PRIVATE_KEY") or "").strip()
    client_email = (env_map.get("FIREBASE_CLIENT_EMAIL") or "").strip()

    if project_id and private_key and client_email:
        return {
            "type": "service_account",
            "project_id": project_id,
            # env files usually store newlines escaped
            "private_key": private_key.replace("\\n", "\n"),
            "client_email": client_email,
            "token_uri": "https://oauth2.googleapis.com/token",
        }

    return None


def connect_firestore(service_account: Mapping[str, Any]):
    """Return a Firestore client bound to the default Firebase app.

    The default app is initialised on first use and reused afterwards, so the
    store factory can be called more than once per process.
    """

    try:
        app = firebase_admin.get_app()
    except ValueError:
        app = firebase_admin.initialize_app(credentials.Certificate(dict(service_account)))
    return firestore.client(app)
