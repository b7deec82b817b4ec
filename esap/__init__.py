"""
ESAP - content platform backend.

Authorization guard, moderation workflow for categories/tags/content,
bookmark/read-later/content-tag relations and password reset PINs.
"""

__version__ = "0.1.0"
