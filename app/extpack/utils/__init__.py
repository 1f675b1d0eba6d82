"""Utility modules for extpack."""
