"""
Module-level app for `uvicorn dashboard_server:app`.
"""
import os

from marketlens.config_loader import load_config
from marketlens.dashboard.app import DashboardApp

dashboard = DashboardApp(load_config(os.getenv("MARKETLENS_CONFIG", "config/config.yaml")))

# Export app for uvicorn
app = dashboard.get_app()
