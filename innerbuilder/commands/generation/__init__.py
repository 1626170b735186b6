"""Code generation commands."""
