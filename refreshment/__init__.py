"""
Refreshment renews your AWS credentials with a new token from your
multifactor auth device, or through the Substrate credential helper.
"""

__version__ = "0.1.0"
