"""Data and storage models for Eminent Notes."""
