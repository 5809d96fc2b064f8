"""Transient user notifications (toasts) and their delivery channels."""

from cozy.notifications.channels import NotificationChannel
from cozy.notifications.router import NotificationRouter
from cozy.notifications.toast import LogChannel, Toast, ToastChannel

__all__ = [
    "LogChannel",
    "NotificationChannel",
    "NotificationRouter",
    "Toast",
    "ToastChannel",
]
