"""Donation data acquisition pipeline for Movember fundraising pages."""

__version__ = "0.1.0"
