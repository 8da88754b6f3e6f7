"""
Configuration loading for Usage Window.
"""
