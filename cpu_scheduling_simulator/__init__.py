"""
CPU scheduling simulator: a discrete-time engine for classic scheduling policies.
"""

__version__ = "0.1.0"
