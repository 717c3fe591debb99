"""
Configuration and error-handling utilities.
"""
