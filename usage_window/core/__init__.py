"""
Core modules for Usage Window.

This package contains billing periods, the usage catalog, and the
raw usage window optimizer.
"""
