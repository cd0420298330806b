from django import forms
from django.utils import timezone

from cvboard.forms import PayloadForm, StringListField
from .models import Job, JobAlert, JobCategory


class JobForm(PayloadForm):
    """Validates a job posting payload.

    Used for creation (title, description, location and the enums are
    required) and, with ``partial=True``, for updates where only the sent
    keys are checked.
    """

    title = forms.CharField(min_length=1, max_length=200)
    description = forms.CharField(min_length=50, max_length=5000)
    short_description = forms.CharField(max_length=500, required=False)
    company_name = forms.CharField(max_length=200, required=False)
    company_logo = forms.URLField(required=False)
    company_website = forms.URLField(required=False)
    location = forms.CharField(min_length=1, max_length=200)
    country = forms.CharField(max_length=100, required=False)
    city = forms.CharField(max_length=100, required=False)
    work_type = forms.ChoiceField(choices=Job.WORK_TYPE_CHOICES)
    category_id = forms.IntegerField(required=False)
    employment_type = forms.ChoiceField(choices=Job.EMPLOYMENT_TYPE_CHOICES)
    experience_level = forms.ChoiceField(choices=Job.EXPERIENCE_LEVEL_CHOICES)
    salary_min = forms.IntegerField(min_value=0, required=False)
    salary_max = forms.IntegerField(min_value=0, required=False)
    salary_currency = forms.RegexField(regex=r"^[A-Za-z]{3}$", required=False)
    salary_period = forms.ChoiceField(choices=Job.SALARY_PERIOD_CHOICES, required=False)
    salary_negotiable = forms.BooleanField(required=False)
    show_salary = forms.BooleanField(required=False)
    required_skills = StringListField(max_items=50)
    preferred_skills = StringListField(max_items=50)
    required_education = forms.CharField(max_length=200, required=False)
    required_experience_years = forms.IntegerField(min_value=0, max_value=50, required=False)
    languages = StringListField()
    benefits = StringListField()
    perks = StringListField()
    application_deadline = forms.DateTimeField(required=False)
    start_date = forms.DateTimeField(required=False)
    application_instructions = forms.CharField(max_length=2000, required=False)
    application_url = forms.URLField(required=False)
    is_urgent = forms.BooleanField(required=False)
    is_featured = forms.BooleanField(required=False)
    is_remote_friendly = forms.BooleanField(required=False)
    tags = StringListField(max_items=20)
    status = forms.ChoiceField(choices=Job.STATUS_CHOICES, required=False)

    def clean_salary_currency(self):
        return (self.cleaned_data.get("salary_currency") or "USD").upper()

    def clean_category_id(self):
        category_id = self.cleaned_data.get("category_id")
        if category_id and not JobCategory.objects.filter(id=category_id, is_active=True).exists():
            raise forms.ValidationError("Unknown job category.")
        return category_id

    def clean_application_deadline(self):
        deadline = self.cleaned_data.get("application_deadline")
        if deadline and deadline <= timezone.now():
            raise forms.ValidationError("The application deadline must be in the future.")
        return deadline

    def clean_start_date(self):
        start = self.cleaned_data.get("start_date")
        if start and start.date() < timezone.now().date():
            raise forms.ValidationError("The start date cannot be in the past.")
        return start

    def clean(self):
        cleaned = super().clean()
        low, high = cleaned.get("salary_min"), cleaned.get("salary_max")
        if low is not None and high is not None and low > high:
            self.add_error("salary_max", "Maximum salary must be greater than or equal to the minimum.")
        return cleaned


class JobAlertForm(PayloadForm):
    name = forms.CharField(max_length=100, required=False)
    keywords = forms.CharField(max_length=200, required=False)
    location = forms.CharField(max_length=200, required=False)
    work_type = forms.ChoiceField(choices=Job.WORK_TYPE_CHOICES, required=False)
    employment_type = forms.ChoiceField(choices=Job.EMPLOYMENT_TYPE_CHOICES, required=False)
    experience_level = forms.ChoiceField(choices=Job.EXPERIENCE_LEVEL_CHOICES, required=False)
    salary_min = forms.IntegerField(min_value=0, required=False)
    category_id = forms.IntegerField(required=False)
    skills = StringListField(max_items=30)
    is_active = forms.BooleanField(required=False)
    frequency = forms.ChoiceField(choices=JobAlert.FREQUENCY_CHOICES, required=False)

    def clean_category_id(self):
        category_id = self.cleaned_data.get("category_id")
        if category_id and not JobCategory.objects.filter(id=category_id).exists():
            raise forms.ValidationError("Unknown job category.")
        return category_id

    def clean(self):
        cleaned = super().clean()
        if not self.partial and not (cleaned.get("keywords") or cleaned.get("skills")):
            raise forms.ValidationError("An alert needs keywords or skills.")
        return cleaned


class SavedJobNotesForm(PayloadForm):
    notes = forms.CharField(max_length=1000, required=False)

    def clean_notes(self):
        raw = self.payload.get("notes")
        if raw is not None and not isinstance(raw, str):
            raise forms.ValidationError("Notes must be text.")
        return self.cleaned_data["notes"]
