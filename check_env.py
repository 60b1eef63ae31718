#!/usr/bin/env python3
"""Check the .env file and report which booking collaborators are configured."""

from pathlib import Path
import sys

TEMPLATE = """# Supabase (orders table). Leave empty to keep orders in memory.
# Get these from: https://supabase.com/dashboard -> Your Project -> Settings -> API
MOVEBOOK_SUPABASE_URL=https://your-project-id.supabase.co
MOVEBOOK_SUPABASE_KEY=your-service-role-key-here
MOVEBOOK_ORDERS_TABLE=payments

# Mapbox (geocoding and directions)
MOVEBOOK_MAPBOX_ACCESS_TOKEN=your-mapbox-token-here
MOVEBOOK_GEOCODE_COUNTRY=ke

# Routing provider: mapbox or osrm
MOVEBOOK_ROUTER_PROVIDER=mapbox
# MOVEBOOK_OSRM_BASE_URL=http://localhost:5000

# Pricing
MOVEBOOK_CURRENCY=KES
MOVEBOOK_TAX_RATE_BPS=1000
MOVEBOOK_SHIPPING_POLICY=linear

# Scheduling
MOVEBOOK_TIME_SLOT_POLICY=single
MOVEBOOK_BOOKING_TIMEZONE=Africa/Nairobi
"""

SECRET_KEYS = ("MOVEBOOK_SUPABASE_KEY", "MOVEBOOK_MAPBOX_ACCESS_TOKEN")


def _mask(value: str) -> str:
    return value[:8] + "..." + value[-4:] if len(value) > 16 else value


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    if not env_file.exists():
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"Created template .env file at: {env_file}")
        print("Please edit it and add your Supabase and Mapbox credentials.")
        return

    print(f"Found .env file at: {env_file}")
    for line in env_file.read_text(encoding="utf-8").splitlines():
        key, sep, value = line.partition("=")
        if sep and key.strip() in SECRET_KEYS:
            print(f"{key}={_mask(value.strip())}")
        else:
            print(line)
    print()

    sys.path.insert(0, str(project_root / "src"))
    try:
        from movebook.config import settings
    except Exception as e:
        print(f"Error loading config: {e}")
        return

    checks = {
        "Supabase order store": bool(settings.supabase_url and settings.supabase_key),
        "Mapbox geocoder": bool(settings.mapbox_access_token),
        f"Router ({settings.router_provider})": bool(
            settings.osrm_base_url if settings.router_provider == "osrm" else settings.mapbox_access_token
        ),
    }
    for name, ok in checks.items():
        print(f"{'OK     ' if ok else 'MISSING'} {name}")
    if not checks["Supabase order store"]:
        print("\nOrders will only be kept in memory until Supabase is configured.")


if __name__ == "__main__":
    main()
