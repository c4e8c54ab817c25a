"""Azadi Social Welfare Organization content backend.

Persistence gateway over a keyed document store, typed collection
repositories, and the maintenance automation engine used by the admin
surface.
"""

__version__ = "1.0.0"
