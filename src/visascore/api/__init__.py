"""
HTTP gateway.
"""
