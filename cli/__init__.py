"""Command-line tools for the rainwater hydro service.

The Typer application lives in ``cli.app`` and is installed as ``hydro``.
"""
