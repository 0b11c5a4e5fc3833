"""
Interfaces Layer

Command line entry point and request schemas.
"""
