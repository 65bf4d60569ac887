"""Configuration and console helpers."""
