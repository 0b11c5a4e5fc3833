"""
Infrastructure Layer

Adapters implementing the domain ports: bounded processes, workspaces,
compilers, analyzers and profilers, plus configuration and logging.
"""
