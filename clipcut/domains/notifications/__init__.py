from clipcut.domains.notifications.services import NotificationRouter

__all__ = ["NotificationRouter"]
