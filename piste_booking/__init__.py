"""Availability and booking lifecycle core for the Piste gym reservation system."""

__version__ = "0.1.0"
