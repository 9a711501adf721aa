"""Kiosk Package - Content Service Runner."""
from .kiosk import main, run_service

__all__ = ["main", "run_service"]
