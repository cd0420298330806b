from django.db import models

from users.models import User
from .document import default_document, default_theme


class CV(models.Model):
    """A résumé built in the editor.

    ``data`` holds the structured document described in
    :mod:`cvs.document` (theme, personal info and sections).
    """

    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name="cvs")
    title = models.CharField(max_length=200, default="My CV")
    data = models.JSONField(default=default_document)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at", "-id"]

    def __str__(self) -> str:
        return self.title


class CVVersion(models.Model):
    """Immutable snapshot of a CV's data with the diff against its predecessor."""

    cv = models.ForeignKey(CV, on_delete=models.CASCADE, related_name="versions")
    description = models.CharField(max_length=255, blank=True)
    data = models.JSONField()
    changes = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"{self.cv.title} @ {self.created_at:%Y-%m-%d %H:%M}"


class CVShare(models.Model):
    """Public link exposing one version of a CV."""

    cv = models.ForeignKey(CV, on_delete=models.CASCADE, related_name="shares")
    version = models.ForeignKey(CVVersion, on_delete=models.CASCADE, related_name="shares")
    token = models.CharField(max_length=64, unique=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.token


class Template(models.Model):
    """A visual template users can pick for their CV."""

    name = models.CharField(max_length=50, unique=True)
    description = models.TextField(blank=True)
    structure = models.JSONField(default=default_theme)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return self.name
