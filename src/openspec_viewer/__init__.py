"""Browse an OpenSpec directory in the browser, with live reload."""

__version__ = "0.1.0"
