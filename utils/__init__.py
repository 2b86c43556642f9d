"""Utility modules shared by the workflow packages."""
