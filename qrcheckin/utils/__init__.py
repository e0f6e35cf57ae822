"""
Utility modules for text handling and settings validation.
"""
