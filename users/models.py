from django.db import models


class User(models.Model):
    """Account for the CV Board platform.

    The platform distinguishes between candidates, HR users and admins
    via the ``role`` field.  Authentication is handled through session
    state (``user_id`` and ``role`` keys), not via Django's built-in auth
    system; passwords are still hashed with Django's password hashers.
    """

    ROLE_CANDIDATE = "candidate"
    ROLE_HR = "hr"
    ROLE_ADMIN = "admin"
    ROLE_CHOICES = (
        (ROLE_CANDIDATE, "Candidate"),
        (ROLE_HR, "HR"),
        (ROLE_ADMIN, "Admin"),
    )

    username = models.CharField(max_length=100, unique=True)
    first_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100, blank=True)
    email = models.EmailField(unique=True)
    password = models.CharField(max_length=128)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_CANDIDATE)
    is_verified = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    verification_token = models.CharField(max_length=64, blank=True, null=True)
    reset_password_token = models.CharField(max_length=64, blank=True, null=True)
    reset_password_expires = models.DateTimeField(blank=True, null=True)
    last_login = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return self.username

    @property
    def is_candidate(self) -> bool:
        return self.role == self.ROLE_CANDIDATE

    @property
    def is_hr(self) -> bool:
        return self.role == self.ROLE_HR

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.username


COMPANY_SIZE_CHOICES = (
    ("startup", "Startup"),
    ("small", "Small"),
    ("medium", "Medium"),
    ("large", "Large"),
    ("enterprise", "Enterprise"),
)


class CandidateProfile(models.Model):
    """Professional profile of a job seeker.

    List-valued attributes (skills, languages, preferred roles...) are
    stored as JSON.  Privacy flags decide what other users see through
    the public profile view.
    """

    VISIBILITY_CHOICES = (
        ("public", "Public"),
        ("private", "Private"),
        ("hr_only", "HR only"),
    )

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="candidate_profile")
    first_name = models.CharField(max_length=50, blank=True)
    last_name = models.CharField(max_length=50, blank=True)
    bio = models.TextField(blank=True)
    title = models.CharField(max_length=100, blank=True)
    location = models.CharField(max_length=100, blank=True)
    website = models.URLField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    date_of_birth = models.DateTimeField(blank=True, null=True)
    avatar = models.ImageField(upload_to="avatars/candidates/", blank=True, null=True)

    current_salary = models.PositiveIntegerField(blank=True, null=True)
    expected_salary = models.PositiveIntegerField(blank=True, null=True)
    salary_negotiable = models.BooleanField(default=True)
    availability_date = models.DateTimeField(blank=True, null=True)
    work_preferences = models.JSONField(default=dict, blank=True)

    linkedin_url = models.URLField(blank=True)
    github_url = models.URLField(blank=True)
    twitter_url = models.URLField(blank=True)
    portfolio_url = models.URLField(blank=True)

    skills = models.JSONField(default=list, blank=True)
    interests = models.JSONField(default=list, blank=True)
    languages = models.JSONField(default=list, blank=True)
    years_of_experience = models.PositiveIntegerField(default=0)

    preferred_roles = models.JSONField(default=list, blank=True)
    preferred_industries = models.JSONField(default=list, blank=True)
    preferred_company_size = models.CharField(max_length=20, choices=COMPANY_SIZE_CHOICES, blank=True)

    profile_visibility = models.CharField(max_length=10, choices=VISIBILITY_CHOICES, default="private")
    show_email = models.BooleanField(default=False)
    show_phone = models.BooleanField(default=False)
    show_salary = models.BooleanField(default=False)
    allow_hr_contact = models.BooleanField(default=True)

    email_notifications = models.BooleanField(default=True)
    job_alerts = models.BooleanField(default=True)

    profile_views_count = models.PositiveIntegerField(default=0)
    last_active_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Candidate profile of {self.user.username}"


class HrProfile(models.Model):
    """Recruiter profile with company details and posting permissions."""

    PLAN_CHOICES = (
        ("basic", "Basic"),
        ("premium", "Premium"),
        ("enterprise", "Enterprise"),
    )
    CONTACT_CHOICES = (
        ("email", "E-mail"),
        ("phone", "Phone"),
        ("linkedin", "LinkedIn"),
    )

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="hr_profile")
    first_name = models.CharField(max_length=50, blank=True)
    last_name = models.CharField(max_length=50, blank=True)
    job_title = models.CharField(max_length=100, blank=True)
    department = models.CharField(max_length=100, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    avatar = models.ImageField(upload_to="avatars/hr/", blank=True, null=True)

    company_name = models.CharField(max_length=200, blank=True)
    company_website = models.URLField(blank=True)
    company_size = models.CharField(max_length=20, choices=COMPANY_SIZE_CHOICES, blank=True)
    company_industry = models.CharField(max_length=100, blank=True)
    company_location = models.CharField(max_length=200, blank=True)
    company_description = models.TextField(blank=True)

    years_of_experience = models.PositiveIntegerField(blank=True, null=True)
    specializations = models.JSONField(default=list, blank=True)
    hiring_sectors = models.JSONField(default=list, blank=True)

    preferred_contact_method = models.CharField(max_length=10, choices=CONTACT_CHOICES, default="email")
    working_hours = models.JSONField(default=dict, blank=True)
    linkedin_url = models.URLField(blank=True)
    company_linkedin_url = models.URLField(blank=True)

    can_post_jobs = models.BooleanField(default=True)
    can_view_candidates = models.BooleanField(default=True)
    can_contact_candidates = models.BooleanField(default=True)
    monthly_job_post_limit = models.IntegerField(default=5)
    subscription_plan = models.CharField(max_length=20, choices=PLAN_CHOICES, default="basic")

    total_jobs_posted = models.PositiveIntegerField(default=0)
    total_candidates_contacted = models.PositiveIntegerField(default=0)
    last_active_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"HR profile of {self.user.username}"


class ProfileView(models.Model):
    """One visit of a candidate's public profile."""

    profile = models.ForeignKey(CandidateProfile, on_delete=models.CASCADE, related_name="views")
    viewer = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    viewer_type = models.CharField(max_length=20)
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    user_agent = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.viewer_type} viewed {self.profile_id}"
