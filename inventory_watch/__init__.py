"""
Store pickup inventory watcher.

This package polls a retailer's fulfillment endpoint for the SKUs in a
country catalog, reports which nearby stores have them available for
pickup and notifies the user.  See README.md for details.
"""

__all__ = [
    "catalog",
    "config",
    "emailer",
    "main",
    "monitor",
    "notifier",
    "scraper",
    "utils",
]
