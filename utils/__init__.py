"""
Shared helpers: logging setup and error handling decorators
"""
