"""Inventario de equipos TI."""

__version__ = "1.0.0"
