# detector_pipeline/__init__.py
"""Orchestrates the partition -> HoG feature extraction -> classify workflow."""

__version__ = "1.0.0"
