"""
Domain Layer

Pure business rules: job lifecycle, media descriptors, HLS policy.
"""
