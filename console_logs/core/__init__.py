"""Configuration, storage and shared primitives."""
