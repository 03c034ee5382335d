"""
Utilities package for the HVAC billing package.
"""
