"""
Bucket file manager: HTTP API over S3-compatible storage and its client.
"""
__version__ = "0.1.0"
