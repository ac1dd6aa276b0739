"""
Padel league ratings backend.
"""
