"""
Core module - configuration, exceptions, shared models.
"""
