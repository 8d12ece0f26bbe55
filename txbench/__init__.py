"""
Transaction throughput benchmark.

This package opens a session to a key/value transaction service, submits a
fixed number of sequential writes, and reports transactions per second. It
can also sweep worker counts over repeated runs and render the results.
"""

from .main import main

__all__ = ["main"]
