"""Serverless entry point; the platform imports ``app`` from this module."""
from fleet_cms import create_app

app = create_app()
