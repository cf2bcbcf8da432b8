"""Core types shared across the calibration pipeline."""
