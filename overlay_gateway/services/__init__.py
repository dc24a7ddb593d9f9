"""
Overlay Gateway Services

- config - Overlay-driven live configuration patching
"""
