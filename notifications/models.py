from django.db import models

from users.models import User


class Notification(models.Model):
    """A message addressed to one user."""

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="notifications")
    message = models.TextField()
    kind = models.CharField(max_length=30, default="general")
    link = models.CharField(max_length=255, blank=True)
    read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"{self.user.username}: {self.message[:40]}"
