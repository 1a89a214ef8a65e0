"""Picturific: pull embedded images out of PDF documents, locally."""

__version__ = "0.1.0"
