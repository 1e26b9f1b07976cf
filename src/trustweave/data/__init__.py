"""Data layer - input and output record schemas."""
