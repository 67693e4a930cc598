"""
Positioner device constants.
"""
