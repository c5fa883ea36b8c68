"""
VisaScore: officer-perspective scoring of O-1A, O-1B, P-1A and EB-1A petitions.
"""

__version__ = "0.1.0"
