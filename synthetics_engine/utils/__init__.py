"""Filesystem, logging and clock helpers."""
