"""
Services - supporting application services.
"""

from esap.services.notification import NotificationService

__all__ = ["NotificationService"]
