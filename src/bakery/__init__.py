"""Bakery ordering service."""
