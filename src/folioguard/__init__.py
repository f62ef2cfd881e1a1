"""FolioGuard - admin authentication, session and audit core for the portfolio site."""

__version__ = "0.1.0"
