from django.db import models
from django.utils import timezone
from django.utils.text import slugify

from users.models import User


class JobCategory(models.Model):
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    parent = models.ForeignKey("self", on_delete=models.SET_NULL, blank=True, null=True, related_name="children")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "job categories"

    def __str__(self) -> str:
        return self.name


class Job(models.Model):
    """A job posting published by an HR user.

    Postings start as drafts and move through the publishing lifecycle
    (see ``STATUS_TRANSITIONS``).  The embedding field stores the float32
    vector of the posting's text for matching against CVs.
    """

    STATUS_DRAFT = "draft"
    STATUS_PUBLISHED = "published"
    STATUS_PAUSED = "paused"
    STATUS_CLOSED = "closed"
    STATUS_EXPIRED = "expired"
    STATUS_CHOICES = (
        (STATUS_DRAFT, "Draft"),
        (STATUS_PUBLISHED, "Published"),
        (STATUS_PAUSED, "Paused"),
        (STATUS_CLOSED, "Closed"),
        (STATUS_EXPIRED, "Expired"),
    )
    STATUS_TRANSITIONS = {
        STATUS_DRAFT: {STATUS_PUBLISHED, STATUS_CLOSED},
        STATUS_PUBLISHED: {STATUS_PAUSED, STATUS_CLOSED},
        STATUS_PAUSED: {STATUS_PUBLISHED, STATUS_CLOSED},
        STATUS_EXPIRED: {STATUS_PUBLISHED},
        STATUS_CLOSED: set(),
    }

    WORK_TYPE_CHOICES = (("remote", "Remote"), ("hybrid", "Hybrid"), ("onsite", "On-site"))
    EMPLOYMENT_TYPE_CHOICES = (
        ("full-time", "Full-time"),
        ("part-time", "Part-time"),
        ("contract", "Contract"),
        ("internship", "Internship"),
    )
    EXPERIENCE_LEVEL_CHOICES = (
        ("entry", "Entry"),
        ("mid", "Mid"),
        ("senior", "Senior"),
        ("executive", "Executive"),
    )
    SALARY_PERIOD_CHOICES = (("yearly", "Yearly"), ("monthly", "Monthly"), ("hourly", "Hourly"))

    posted_by = models.ForeignKey(User, on_delete=models.CASCADE, related_name="jobs")
    title = models.CharField(max_length=200)
    description = models.TextField()
    short_description = models.CharField(max_length=500, blank=True)
    company_name = models.CharField(max_length=200, blank=True)
    company_logo = models.URLField(blank=True)
    company_website = models.URLField(blank=True)

    location = models.CharField(max_length=200)
    country = models.CharField(max_length=100, blank=True)
    city = models.CharField(max_length=100, blank=True)
    work_type = models.CharField(max_length=10, choices=WORK_TYPE_CHOICES)
    category = models.ForeignKey(JobCategory, on_delete=models.SET_NULL, blank=True, null=True, related_name="jobs")
    employment_type = models.CharField(max_length=20, choices=EMPLOYMENT_TYPE_CHOICES)
    experience_level = models.CharField(max_length=20, choices=EXPERIENCE_LEVEL_CHOICES)

    salary_min = models.PositiveIntegerField(blank=True, null=True)
    salary_max = models.PositiveIntegerField(blank=True, null=True)
    salary_currency = models.CharField(max_length=3, default="USD")
    salary_period = models.CharField(max_length=10, choices=SALARY_PERIOD_CHOICES, default="yearly")
    salary_negotiable = models.BooleanField(default=False)
    show_salary = models.BooleanField(default=True)

    required_skills = models.JSONField(default=list, blank=True)
    preferred_skills = models.JSONField(default=list, blank=True)
    required_education = models.CharField(max_length=200, blank=True)
    required_experience_years = models.PositiveIntegerField(blank=True, null=True)
    languages = models.JSONField(default=list, blank=True)
    benefits = models.JSONField(default=list, blank=True)
    perks = models.JSONField(default=list, blank=True)

    application_deadline = models.DateTimeField(blank=True, null=True)
    start_date = models.DateTimeField(blank=True, null=True)
    application_instructions = models.TextField(blank=True)
    application_url = models.URLField(blank=True)

    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_DRAFT)
    is_urgent = models.BooleanField(default=False)
    is_featured = models.BooleanField(default=False)
    is_remote_friendly = models.BooleanField(default=False)
    slug = models.SlugField(max_length=255, unique=True, blank=True)
    tags = models.JSONField(default=list, blank=True)

    view_count = models.PositiveIntegerField(default=0)
    application_count = models.PositiveIntegerField(default=0)
    share_count = models.PositiveIntegerField(default=0)

    embedding = models.BinaryField(blank=True, null=True)

    published_at = models.DateTimeField(blank=True, null=True)
    expires_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-published_at", "-created_at", "-id"]

    def __str__(self) -> str:
        return self.title

    def save(self, *args, **kwargs):
        if not self.slug:
            base = slugify(self.title)[:200] or "job"
            slug, counter = base, 2
            while Job.objects.filter(slug=slug).exclude(pk=self.pk).exists():
                slug = f"{base}-{counter}"
                counter += 1
            self.slug = slug
        super().save(*args, **kwargs)

    def can_transition_to(self, status: str) -> bool:
        return status in self.STATUS_TRANSITIONS.get(self.status, set())

    @property
    def is_open(self) -> bool:
        """Published, not past its expiry and still accepting applications."""
        now = timezone.now()
        return (
            self.status == self.STATUS_PUBLISHED
            and (self.expires_at is None or self.expires_at > now)
            and (self.application_deadline is None or self.application_deadline > now)
        )

    def embedding_text(self) -> str:
        """Text used to compute the posting's embedding and AI prompts."""
        parts = [
            self.title,
            self.description,
            " ".join(self.required_skills),
            " ".join(self.preferred_skills),
            self.required_education,
        ]
        return "\n".join(part for part in parts if part)


class JobView(models.Model):
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name="views")
    viewer = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    user_agent = models.CharField(max_length=255, blank=True)
    viewed_at = models.DateTimeField(auto_now_add=True)


class SavedJob(models.Model):
    """A job bookmarked by a candidate."""

    candidate = models.ForeignKey(User, on_delete=models.CASCADE, related_name="saved_jobs")
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name="saves")
    notes = models.TextField(blank=True)
    saved_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-saved_at", "-id"]
        constraints = [models.UniqueConstraint(fields=["candidate", "job"], name="unique_saved_job")]

    def __str__(self) -> str:
        return f"{self.candidate.username} - {self.job.title}"


class JobAlert(models.Model):
    """Saved search that notifies a candidate about new matching jobs."""

    FREQUENCY_CHOICES = (("immediate", "Immediate"), ("daily", "Daily"), ("weekly", "Weekly"))

    candidate = models.ForeignKey(User, on_delete=models.CASCADE, related_name="job_alerts")
    name = models.CharField(max_length=100, blank=True)
    keywords = models.CharField(max_length=200, blank=True)
    location = models.CharField(max_length=200, blank=True)
    work_type = models.CharField(max_length=10, choices=Job.WORK_TYPE_CHOICES, blank=True)
    employment_type = models.CharField(max_length=20, choices=Job.EMPLOYMENT_TYPE_CHOICES, blank=True)
    experience_level = models.CharField(max_length=20, choices=Job.EXPERIENCE_LEVEL_CHOICES, blank=True)
    salary_min = models.PositiveIntegerField(blank=True, null=True)
    category = models.ForeignKey(JobCategory, on_delete=models.SET_NULL, blank=True, null=True)
    skills = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    frequency = models.CharField(max_length=10, choices=FREQUENCY_CHOICES, default="daily")
    last_sent_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(fields=["candidate", "keywords", "location"], name="unique_job_alert")
        ]

    def __str__(self) -> str:
        return self.name or self.keywords or f"Alert {self.pk}"
