"""Runtime configuration read from the environment."""

from __future__ import annotations

import os
from pathlib import Path

WEB_DIR = Path(__file__).parent / "web"

# Coordinator
MAIN_HOST = os.environ.get("MAIN_HOST", "127.0.0.1")
MAIN_PORT = int(os.environ.get("MAIN_PORT", "3000"))

# Downstream agents
WEATHER_AGENT_URL = os.environ.get("WEATHER_AGENT_URL", "http://localhost:3001")
FLIGHT_AGENT_URL = os.environ.get("FLIGHT_AGENT_URL", "http://localhost:3002")

# Timeouts (seconds)
AGENT_TIMEOUT = float(os.environ.get("AGENT_TIMEOUT", "20"))
DISCOVERY_TIMEOUT = float(os.environ.get("DISCOVERY_TIMEOUT", "10"))

# UI stream keep-alive interval (seconds)
HEARTBEAT_INTERVAL = float(os.environ.get("HEARTBEAT_INTERVAL", "15"))

DEFAULT_SURFACE_ID = "main"

# Declarative UI documents
CATALOG_PATH = Path(os.environ.get("CATALOG_PATH", WEB_DIR / "catalog.json"))
BINDINGS_PATH = Path(os.environ.get("BINDINGS_PATH", WEB_DIR / "bindings.json"))
