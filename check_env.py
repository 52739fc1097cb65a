#!/usr/bin/env python3
"""Helper script to check and create the .env file for Supabase configuration."""

import os
import sys
from pathlib import Path

TEMPLATE = """# Supabase Configuration (leave empty to run with in-memory storage)
# Get these from: https://supabase.com/dashboard -> Your Project -> Settings -> API
FIELDOPS_SUPABASE_URL=https://your-project-id.supabase.co
FIELDOPS_SUPABASE_KEY=your-service-role-key-here

# API Configuration
FIELDOPS_API_PREFIX=/api
# FIELDOPS_FRONTEND_ALLOWED_ORIGINS - JSON array or comma-separated list

# Assignment defaults
# FIELDOPS_MAX_UTILIZATION_THRESHOLD=100
# FIELDOPS_ALLOW_CROSS_ZONE_ASSIGNMENT=true
"""


def _masked(value: str) -> str:
    return value[:20] + "..." + value[-10:] if len(value) > 30 else value


def main() -> None:
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    if not env_file.exists():
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"Created template .env file at: {env_file}")
        print("Please edit .env and add your Supabase credentials.")
        return

    print(f"Found .env file at: {env_file}")
    for name in ("FIELDOPS_SUPABASE_URL", "FIELDOPS_SUPABASE_KEY"):
        value = os.getenv(name)
        print(f"{name} (from environment): {_masked(value) if value else 'not set'}")

    sys.path.insert(0, str(project_root / "src"))
    try:
        from fieldops.config import settings
    except Exception as exc:
        print(f"Error loading config: {exc}")
        return

    if settings.supabase_url and settings.supabase_key:
        print("Supabase is configured.")
    else:
        print("Supabase is NOT configured; the API will use in-memory repositories.")
        print("Make sure variables start with the FIELDOPS_ prefix and restart the backend after editing .env.")


if __name__ == "__main__":
    main()
