"""Daybook command line interface."""
