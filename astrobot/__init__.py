"""AstroBot API: AI-assisted computer build generation."""

__version__ = "0.1.0"
