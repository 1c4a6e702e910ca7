"""User interface components for Whis Desktop."""

from .tray import TrayController

__all__ = ["TrayController"]
