"""Commands available through the innerbuilder CLI."""
