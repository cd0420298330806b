from django import forms
from django.contrib.auth.hashers import make_password

from cvboard.forms import DictField, PayloadForm, StringListField
from .models import COMPANY_SIZE_CHOICES, CandidateProfile, HrProfile, User


class SignupForm(forms.ModelForm):
    """Form for registering a new user.

    Overrides the default save method to hash the password before
    persisting the user instance to the database.  Only candidate and HR
    accounts can be self-registered.
    """

    username = forms.CharField(min_length=3, max_length=100)
    password = forms.CharField(min_length=6, widget=forms.PasswordInput)
    role = forms.ChoiceField(
        choices=((User.ROLE_CANDIDATE, "Candidate"), (User.ROLE_HR, "HR")),
        required=False,
    )

    class Meta:
        model = User
        fields = [
            "username",
            "first_name",
            "last_name",
            "email",
            "password",
            "role",
        ]

    def clean_email(self) -> str:
        return self.cleaned_data["email"].strip().lower()

    def clean_role(self) -> str:
        return self.cleaned_data.get("role") or User.ROLE_CANDIDATE

    def save(self, commit: bool = True) -> User:
        user = super().save(commit=False)
        # Hash the password using Django's hashers
        user.password = make_password(self.cleaned_data["password"])
        if commit:
            user.save()
        return user


class LoginForm(forms.Form):
    """Login form capturing e-mail and password."""

    email = forms.EmailField()
    password = forms.CharField(min_length=6, widget=forms.PasswordInput)


class ForgotPasswordForm(forms.Form):
    email = forms.EmailField()


class ResetPasswordForm(forms.Form):
    token = forms.CharField()
    password = forms.CharField(min_length=6, widget=forms.PasswordInput)


class CandidateProfileForm(PayloadForm):
    """Validates candidate profile updates; every field is optional."""

    LANGUAGE_LEVELS = ("beginner", "intermediate", "advanced", "native")

    first_name = forms.CharField(min_length=1, max_length=50)
    last_name = forms.CharField(min_length=1, max_length=50)
    bio = forms.CharField(max_length=1000)
    title = forms.CharField(max_length=100)
    location = forms.CharField(max_length=100)
    website = forms.URLField()
    phone = forms.CharField(max_length=20)
    date_of_birth = forms.DateTimeField()
    current_salary = forms.IntegerField(min_value=0)
    expected_salary = forms.IntegerField(min_value=0)
    salary_negotiable = forms.BooleanField()
    availability_date = forms.DateTimeField()
    work_preferences = DictField()
    linkedin_url = forms.URLField()
    github_url = forms.URLField()
    twitter_url = forms.URLField()
    portfolio_url = forms.URLField()
    skills = StringListField(max_items=100)
    interests = StringListField(max_items=50)
    languages = forms.JSONField()
    years_of_experience = forms.IntegerField(min_value=0, max_value=60)
    preferred_roles = StringListField()
    preferred_industries = StringListField()
    preferred_company_size = forms.ChoiceField(choices=COMPANY_SIZE_CHOICES)

    def __init__(self, data=None, *args, **kwargs):
        kwargs.setdefault("partial", True)
        super().__init__(data, *args, **kwargs)

    def clean_work_preferences(self):
        prefs = self.cleaned_data["work_preferences"]
        allowed = {"remote", "hybrid", "onsite", "willing_to_relocate"}
        unknown = set(prefs) - allowed
        if unknown:
            raise forms.ValidationError(f"Unknown work preferences: {', '.join(sorted(unknown))}")
        if not all(isinstance(value, bool) for value in prefs.values()):
            raise forms.ValidationError("Work preferences must be booleans.")
        return prefs

    def clean_languages(self):
        languages = self.cleaned_data["languages"] or []
        if not isinstance(languages, list):
            raise forms.ValidationError("Enter a list of languages.")
        for item in languages:
            if not isinstance(item, dict) or not isinstance(item.get("name"), str):
                raise forms.ValidationError("Each language needs a name.")
            if item.get("proficiency") not in self.LANGUAGE_LEVELS:
                raise forms.ValidationError(
                    f"Proficiency must be one of: {', '.join(self.LANGUAGE_LEVELS)}"
                )
        return languages


class PrivacySettingsForm(PayloadForm):
    profile_visibility = forms.ChoiceField(choices=CandidateProfile.VISIBILITY_CHOICES)
    show_email = forms.BooleanField()
    show_phone = forms.BooleanField()
    show_salary = forms.BooleanField()
    allow_hr_contact = forms.BooleanField()
    email_notifications = forms.BooleanField()
    job_alerts = forms.BooleanField()

    def __init__(self, data=None, *args, **kwargs):
        kwargs.setdefault("partial", True)
        super().__init__(data, *args, **kwargs)


class HrProfileForm(PayloadForm):
    """Validates HR profile updates; every field is optional."""

    first_name = forms.CharField(min_length=1, max_length=50)
    last_name = forms.CharField(min_length=1, max_length=50)
    job_title = forms.CharField(max_length=100)
    department = forms.CharField(max_length=100)
    phone = forms.CharField(max_length=20)
    company_name = forms.CharField(min_length=1, max_length=200)
    company_website = forms.URLField()
    company_size = forms.ChoiceField(choices=COMPANY_SIZE_CHOICES)
    company_industry = forms.CharField(max_length=100)
    company_location = forms.CharField(max_length=200)
    company_description = forms.CharField(max_length=2000)
    years_of_experience = forms.IntegerField(min_value=0, max_value=50)
    specializations = StringListField()
    hiring_sectors = StringListField()
    preferred_contact_method = forms.ChoiceField(choices=HrProfile.CONTACT_CHOICES)
    working_hours = DictField()
    linkedin_url = forms.URLField()
    company_linkedin_url = forms.URLField()

    def __init__(self, data=None, *args, **kwargs):
        kwargs.setdefault("partial", True)
        super().__init__(data, *args, **kwargs)

    def clean_working_hours(self):
        hours = self.cleaned_data["working_hours"]
        unknown = set(hours) - {"start", "end", "timezone"}
        if unknown:
            raise forms.ValidationError(f"Unknown working hours keys: {', '.join(sorted(unknown))}")
        return hours


class AvatarForm(forms.Form):
    MAX_SIZE = 5 * 1024 * 1024

    avatar = forms.ImageField()

    def clean_avatar(self):
        avatar = self.cleaned_data["avatar"]
        if avatar.size > self.MAX_SIZE:
            raise forms.ValidationError("Avatar images cannot exceed 5 MB.")
        return avatar
