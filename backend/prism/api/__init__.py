"""
HTTP surface for the health and fallback layer.
"""
