"""Service modules"""
from .lever_service import LeverService

__all__ = ["LeverService"]
