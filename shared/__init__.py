# shared/__init__.py
"""
Configuration, logging, error reporting and service clients shared by the
layout pipeline and the CLI.
"""
