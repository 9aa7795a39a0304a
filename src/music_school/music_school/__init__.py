"""Music School administration package.

This package is organized by feature modules (students, lessons, billing, ...)
with a thin Flask controller layer over service/repository layers.
"""
