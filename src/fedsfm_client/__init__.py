"""
fedsfm_client — client for the Rosfinmonitoring (fedsfm) list service.

Authenticates with a client certificate over mutual TLS, fetches catalog
metadata for the published sanctions/suspect lists, and downloads the
list files.

Built on the Railway-Oriented Programming (ROP) framework for
explicit, composable error handling.
"""

__version__ = "0.1.0"
