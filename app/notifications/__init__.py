"""
Notifications app: the in-app notification sink for settlement events.

Usage:
    from notifications.services import NotificationService

    NotificationService.notify_on_commit(
        user_id=buyer.id,
        title="Dispute Resolved - Refunded",
        message="Your dispute has been resolved in your favor.",
        related_id=dispute.id,
    )
"""
