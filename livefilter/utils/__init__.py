"""Utility modules for livefilter."""
