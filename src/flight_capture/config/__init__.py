"""Configuration for flight capture: settings, ROI catalog and pattern tables."""
