"""Client layer over Microsoft Graph drives, drive items, users and groups."""

__version__ = "0.1.0"
