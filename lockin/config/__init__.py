"""
Lock-in amplifier protocol constants.
"""
