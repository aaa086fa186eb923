"""Assemble selected project files into a Markdown context document for LLMs."""

__version__ = "0.1.0"
