"""Tawba: track and repay missed (qada) prayers."""

__version__ = "0.1.0"
