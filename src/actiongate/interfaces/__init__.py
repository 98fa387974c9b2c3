"""Outer surfaces: text renderers and the HTTP gateway."""
