"""Parsing and unmarshalling core for envbind."""
