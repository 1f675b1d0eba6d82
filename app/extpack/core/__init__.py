"""Core import pipeline for extpack."""
