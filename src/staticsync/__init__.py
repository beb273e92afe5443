"""staticsync: keep pairs of files in sync where symlinks cannot be used."""

__version__ = "0.2.0"
