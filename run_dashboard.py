"""
Dashboard startup script.
"""
import os
import sys

import uvicorn

from marketlens.config_loader import load_config
from marketlens.dashboard.app import DashboardApp


if __name__ == "__main__":
    config_path = sys.argv[1] if len(sys.argv) > 1 else os.getenv("MARKETLENS_CONFIG", "config/config.yaml")
    config = load_config(config_path)

    dashboard = DashboardApp(config)

    # Get the FastAPI app instance
    app = dashboard.get_app()

    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.lower()
    )
