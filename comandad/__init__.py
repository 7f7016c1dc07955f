"""WSGI server exposing a sandboxed data directory of files and YAML workflow documents."""

__version__ = "0.1.0"

__all__ = ["__version__"]