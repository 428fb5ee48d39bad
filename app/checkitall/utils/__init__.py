"""Utility modules for cia."""
