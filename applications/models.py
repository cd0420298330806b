from django.db import models

from cvs.models import CV
from jobs.models import Job
from users.models import User


class JobApplication(models.Model):
    """A candidate's application to a job posting.

    ``ai_score`` is the cosine similarity between the CV and the job
    embeddings scaled to 0-100, computed when the application is made.
    """

    STATUS_PENDING = "pending"
    STATUS_REVIEWING = "reviewing"
    STATUS_SHORTLISTED = "shortlisted"
    STATUS_INTERVIEWED = "interviewed"
    STATUS_OFFERED = "offered"
    STATUS_HIRED = "hired"
    STATUS_REJECTED = "rejected"
    STATUS_WITHDRAWN = "withdrawn"
    STATUS_CHOICES = (
        (STATUS_PENDING, "Pending"),
        (STATUS_REVIEWING, "Reviewing"),
        (STATUS_SHORTLISTED, "Shortlisted"),
        (STATUS_INTERVIEWED, "Interviewed"),
        (STATUS_OFFERED, "Offered"),
        (STATUS_HIRED, "Hired"),
        (STATUS_REJECTED, "Rejected"),
        (STATUS_WITHDRAWN, "Withdrawn"),
    )
    FINAL_STATUSES = (STATUS_HIRED, STATUS_REJECTED, STATUS_WITHDRAWN)
    INTERVIEW_TYPE_CHOICES = (("phone", "Phone"), ("video", "Video"), ("in-person", "In person"))

    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name="applications")
    candidate = models.ForeignKey(User, on_delete=models.CASCADE, related_name="applications")
    cv = models.ForeignKey(CV, on_delete=models.SET_NULL, blank=True, null=True, related_name="applications")
    cover_letter = models.TextField(blank=True)
    additional_notes = models.TextField(blank=True)
    portfolio_url = models.URLField(blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    hr_notes = models.TextField(blank=True)
    hr_rating = models.PositiveSmallIntegerField(blank=True, null=True)
    ai_score = models.FloatField(blank=True, null=True)
    ai_analysis = models.JSONField(default=dict, blank=True)

    interview_scheduled_at = models.DateTimeField(blank=True, null=True)
    interview_type = models.CharField(max_length=20, choices=INTERVIEW_TYPE_CHOICES, blank=True)
    interview_notes = models.TextField(blank=True)
    response_deadline = models.DateTimeField(blank=True, null=True)

    applied_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    status_changed_at = models.DateTimeField(blank=True, null=True)
    withdrawn_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["-applied_at", "-id"]
        constraints = [
            models.UniqueConstraint(fields=["job", "candidate"], name="unique_job_application")
        ]

    def __str__(self) -> str:
        return f"{self.candidate.username} -> {self.job.title}"
