"""
mNews - backend API for the mNews news-publishing site.
"""

__version__ = "1.0.0"
