#!/usr/bin/env python3
"""
Launch script for the EV Fleet Analytics backend.

Usage:
    python run_server.py [vehicles_file] [--port PORT] [--host HOST]

Examples:
    python run_server.py                        # No stored vehicle details
    python run_server.py data/vehicles.json     # Load vehicle details
    python run_server.py --port 5000            # Run on port 5000
"""

import argparse
import os
import sys
from pathlib import Path

import uvicorn

# Add fleet_analytics to path
sys.path.insert(0, str(Path(__file__).parent))


def main():
    parser = argparse.ArgumentParser(description="EV Fleet Analytics Backend Server")
    parser.add_argument(
        "vehicles_file",
        nargs="?",
        default=os.getenv("FLEET_VEHICLES_FILE"),
        help="JSON file with stored vehicle details (default: $FLEET_VEHICLES_FILE)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=8000,
        help="Port to run server on (default: 8000)"
    )
    parser.add_argument(
        "--host", "-H",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for all interfaces)"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Run in debug mode"
    )

    args = parser.parse_args()

    print("EV Fleet Analytics Backend")
    print("=" * 40)
    if args.vehicles_file:
        vehicles_file = Path(args.vehicles_file)
        print(f"Vehicle file: {vehicles_file.absolute()}")
        if not vehicles_file.exists():
            print(f"\nWarning: Vehicle file does not exist: {vehicles_file}")
        else:
            # Picked up by the FastAPI lifespan
            os.environ["FLEET_VEHICLES_FILE"] = str(vehicles_file)
    else:
        print("Vehicle file: (none)")
    print(f"Server: http://{args.host}:{args.port}")
    print("=" * 40)

    print("\nAPI Endpoints:")
    print("  GET  /                              - Health check")
    print("  GET  /health                        - Detailed health")
    print("  POST /analytics                     - Aggregate supplied rows")
    print("  GET  /vehicles                      - Device list with stored details")
    print("  GET  /vehicles/{imei}               - Stored vehicle details")
    print("  GET  /vehicles/{imei}/analytics     - Trip and drive-mode analytics")
    print("  GET  /vehicles/{imei}/history.csv   - Location history export")
    print("\nStarting server...")

    uvicorn.run(
        "fleet_analytics.main:app",
        host=args.host,
        port=args.port,
        reload=args.debug,
        log_level="info",
    )


if __name__ == "__main__":
    main()
