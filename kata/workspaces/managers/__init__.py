"""Workspace lifecycle orchestration.

Managers raise domain exceptions (``kata.workspaces.errors``), never HTTP
exceptions -- that translation is the router's responsibility.
"""
