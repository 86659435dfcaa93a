"""gemrelay — Discord to Gemini message relay."""

__version__ = "0.1.0"
