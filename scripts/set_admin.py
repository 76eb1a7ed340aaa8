#!/usr/bin/env python3
"""Grant admin privileges to a user id in the Katha Vault database.

The user may not have signed in yet; a bare profile is created in that case
and filled in on their first visit. Run once per admin, from the deployment
environment so KATHA_DB_PATH / KATHA_DATA_DIR point at the live database.
"""
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from katha_vault.db import init_engine_once
from katha_vault.services import users_service
from katha_vault.services.errors import ValidationError


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("uid", help="authentication provider user id")
    args = parser.parse_args(argv)

    init_engine_once()
    try:
        profile = users_service.grant_admin(args.uid)
    except ValidationError as exc:
        print(f"[SET-ADMIN] rejected: {exc}", file=sys.stderr)
        return 1
    print(f"[SET-ADMIN] admin flag set for uid={profile['id']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
