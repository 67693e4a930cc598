"""
Shared infrastructure for the instrument drivers.

- errors: failure taxonomy and recoverable-condition warnings
- config: defaults.json loader
- utils: tiered logging and operator-facing error templates
"""
