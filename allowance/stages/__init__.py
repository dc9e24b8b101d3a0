"""Calculation stages: request preparation, fan-out, result mapping.

Each stage exposes a small function API; only the fan-out stage performs
I/O, through the lookup callable it is given.
"""
