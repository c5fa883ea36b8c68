"""
Core models, configuration and shared infrastructure.
"""
