"""Utility to transfer data from MySQL to Cloudflare D1."""

__version__ = "1.0.0"

from .transporter import MySQLtoD1
