"""Mindustry Loom: cache, merge and remap game jars for a build.

Example:
    >>> from Mindustry_Loom import __version__
    >>> __version__
    '0.1.0'
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
