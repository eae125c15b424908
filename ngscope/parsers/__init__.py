"""Parser collaborators turning source text into syntax trees."""

from .typescript import ParseError, TypeScriptParser

__all__ = ["ParseError", "TypeScriptParser"]
