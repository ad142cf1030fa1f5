"""
Host-facing API and command-line entry point.
"""
