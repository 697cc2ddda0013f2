"""
cineprompt - cinematic prompt builder.

This package contains:
- catalog: read-only reference and rule tables loaded from packaged YAML.
- conflicts: the constraint resolver, style-stacking analysis, and selection mutators.
- prompt_builder: parameter resolution, composition, and per-model formatting.
- config_service: user settings with env overrides and schema validation.
"""

__version__ = "0.1.0"
