"""Vendor listing draft review service."""
