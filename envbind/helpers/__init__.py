"""Readers and logging helpers for envbind."""
