"""
CLI layer for jobspine.

Terminal transport only: argument parsing and rich output. Everything the
commands do is delegated to ``jobspine.framework``.

Entry point::

    jobspine --help
"""

from jobspine.cli.app import app

__all__ = ["app"]
