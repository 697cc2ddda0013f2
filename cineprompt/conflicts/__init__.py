"""Constraint resolver, style-stacking analysis, and selection mutators."""
