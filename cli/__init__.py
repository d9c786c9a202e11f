"""Command line tools for denseflow."""
