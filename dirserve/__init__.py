"""dirserve: browse, download and stream ZIP archives of a directory tree."""

__version__ = "1.0.0"
