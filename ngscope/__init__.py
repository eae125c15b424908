"""Static analysis for Angular/TypeScript projects."""

__version__ = "0.1.0"
