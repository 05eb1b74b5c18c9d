"""Check Saras configuration and credentials from the command line.

    python scripts/saras_test.py [--fresh] [--user] [--projects]
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
PACKAGE_ROOT = REPO_ROOT / "src" / "track_ai"
if str(PACKAGE_ROOT) not in sys.path:
    sys.path.insert(0, str(PACKAGE_ROOT))

from dotenv import load_dotenv

from track_ai.config import get_settings_module
from track_ai.container import build_saras_client
from track_ai.database.connection import DBConfig, DatabaseConnection
from track_ai.saras.exceptions import SarasApiError
from track_ai.users.mysql_user_repository import MySQLUserRepository


def _mask(secret: str) -> str:
    if not secret:
        return "missing"
    return secret[:3] + "*" * max(len(secret) - 3, 0)


def main(argv=None) -> int:
    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    parser = argparse.ArgumentParser(description="Test Saras API connection and credentials")
    parser.add_argument("--fresh", action="store_true", help="force a fresh token (ignore cache)")
    parser.add_argument("--user", action="store_true", help="also fetch user details")
    parser.add_argument("--projects", action="store_true", help="also fetch projects")
    args = parser.parse_args(argv)

    settings = importlib.import_module(get_settings_module())
    saras = settings.SARAS
    subprojects = saras.get("subproject_ids") or {}

    print("Configuration")
    print(f"  mode        {saras.get('mode')}")
    print(f"  base_url    {saras.get('base_url') or 'missing'}")
    print(f"  username    {saras.get('username') or 'missing'}")
    print(f"  password    {_mask(saras.get('password', ''))}")
    for name in ("attendance", "trackdata", "progress"):
        print(f"  subproject  {name:<10} {subprojects.get(name) or 'not set'}")
    print(f"  workflow_id {saras.get('workflow_id') or 'not set'}")

    if saras.get("mode") != "live":
        print("Running in stub mode; no API calls are made. Set SARAS_MODE=live to test the real connection.")
        return 0
    if not saras.get("username") or not saras.get("password"):
        print("Missing credentials. Set SARAS_USERNAME and SARAS_PASSWORD.")
        return 1

    db = dict(settings.DB_CONFIG)
    conn = DatabaseConnection.get_instance(
        DBConfig(
            host=str(db["host"]),
            port=int(db.get("port", 3306)),
            user=str(db["user"]),
            password=str(db["password"]),
            database=str(db["database"]),
        )
    )
    client, token_manager = build_saras_client(saras, conn=conn, users_repo=MySQLUserRepository(conn))

    try:
        if args.fresh:
            token_manager.invalidate_token()
            print("Cleared cached token.")
        token = token_manager.get_access_token()
        print(f"Authentication OK (token {token[:12]}...)")

        if args.user:
            details = client.get_user_details()
            print(f"User: {details.name} <{details.email}> role={details.role}")

        if args.projects:
            response = client.get_projects_for_user(1, 10)
            print(f"Projects: {response.total_count} total, page {response.current_page}/{response.total_pages}")
            for p in response.projects:
                print(f"  {p.external_id}  {p.name}  [{p.status}]")
    except SarasApiError as e:
        print(f"FAILED: {e.message} ({e.type.value}, status={e.status_code})")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
