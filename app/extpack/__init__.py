"""extpack - Bulk-fetch-then-install for extension packs.

Reads an extension-pack manifest, resolves it against a remote gallery,
downloads the selected packages concurrently and hands them to an
external installer.
"""

__version__ = "0.1.0"
