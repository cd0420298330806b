from django import forms

from cvboard.forms import PayloadForm
from .models import JobApplication


class ApplyForm(PayloadForm):
    cv_id = forms.IntegerField(required=False)
    cover_letter = forms.CharField(min_length=50, max_length=2000, required=False)
    additional_notes = forms.CharField(max_length=500, required=False)
    portfolio_url = forms.URLField(required=False)


class StatusUpdateForm(PayloadForm):
    """HR update of an application; candidates withdraw through their own endpoint."""

    status = forms.ChoiceField(
        choices=[c for c in JobApplication.STATUS_CHOICES if c[0] != JobApplication.STATUS_WITHDRAWN],
        required=False,
    )
    hr_notes = forms.CharField(max_length=2000, required=False)
    hr_rating = forms.IntegerField(min_value=1, max_value=5, required=False)
    interview_scheduled_at = forms.DateTimeField(required=False)
    interview_type = forms.ChoiceField(choices=JobApplication.INTERVIEW_TYPE_CHOICES, required=False)
    interview_notes = forms.CharField(max_length=2000, required=False)
    response_deadline = forms.DateTimeField(required=False)

    def clean(self):
        cleaned = super().clean()
        if not any(name in self.payload for name in self.fields):
            raise forms.ValidationError("Nothing to update.")
        return cleaned


class BulkWithdrawForm(PayloadForm):
    application_ids = forms.JSONField()

    def clean_application_ids(self):
        ids = self.cleaned_data["application_ids"]
        if not isinstance(ids, list) or not ids or not all(isinstance(i, int) for i in ids):
            raise forms.ValidationError("Provide a non-empty list of application ids.")
        if len(ids) > 50:
            raise forms.ValidationError("At most 50 applications can be withdrawn at once.")
        return ids
