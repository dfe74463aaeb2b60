"""
Startup script for container deployment
Handles:
- Data/config directory creation
- Configuration validation
- Uvicorn server launch
"""

import sys
from pathlib import Path

from core.config import settings


def setup_directories():
    """Create necessary directories if they don't exist"""
    directories = [
        settings.DATA_PATH,
        settings.CONFIG_PATH,
    ]

    for directory in directories:
        Path(directory).mkdir(parents=True, exist_ok=True)
        print(f"✓ Directory ready: {directory}")


def check_configuration() -> bool:
    """Load the optional config file and validate the result"""
    try:
        settings.load_file().validate()
    except ValueError as e:
        print(f"❌ Invalid configuration: {e}")
        return False

    url = settings.PELIAS_URL if settings.GEOCODING_SERVER == "pelias" else settings.NOMINATIM_URL
    print(f"✓ Geocoding server: {settings.GEOCODING_SERVER} ({url})")
    print(f"✓ Cache: {settings.CACHE_DURATION}h live, {settings.CACHE_CLEANUP}h hard expiry")
    return True


def main():
    """Main startup sequence"""
    print("=" * 60)
    print("🚀 Geocoding Gateway - Startup")
    print("=" * 60)

    # Step 1: Create directories
    print("\n[1/3] Setting up directories...")
    setup_directories()

    # Step 2: Validate configuration
    print("\n[2/3] Checking configuration...")
    if not check_configuration():
        sys.exit(1)

    # Step 3: Launch uvicorn
    print("\n[3/3] Starting uvicorn server...")
    print("=" * 60)

    # Import and run uvicorn
    import uvicorn

    try:
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.PORT,
            log_level="debug" if settings.DEBUG else "info",
            access_log=True
        )
    except KeyboardInterrupt:
        print("\n⏹️  Shutting down...")
        sys.exit(0)


if __name__ == "__main__":
    main()
