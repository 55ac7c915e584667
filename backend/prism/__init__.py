"""
Prism diagnostics portal backend: capability detection, fallback services
and health monitoring.
"""
