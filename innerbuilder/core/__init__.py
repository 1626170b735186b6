"""Core field collection, declaration tree and builder generation."""
