from django import forms

from cvboard.forms import DictField, PayloadForm


class CVForm(PayloadForm):
    """Title and document of a CV; ``data`` is checked by the document model."""

    title = forms.CharField(min_length=1, max_length=200)
    data = DictField(required=False)


class VersionForm(PayloadForm):
    description = forms.CharField(max_length=255, required=False)


class ImportCVForm(forms.Form):
    """Upload form for importing an existing résumé."""

    MAX_SIZE = 10 * 1024 * 1024

    file = forms.FileField()
    title = forms.CharField(max_length=200, required=False)

    def clean_file(self):
        uploaded = self.cleaned_data["file"]
        if uploaded.size > self.MAX_SIZE:
            raise forms.ValidationError("Files cannot exceed 10 MB.")
        ext = uploaded.name.rsplit(".", 1)[-1].lower() if "." in uploaded.name else ""
        if ext not in ("pdf", "txt", "md"):
            raise forms.ValidationError("Only PDF and text files can be imported.")
        return uploaded


class ImproveTextForm(PayloadForm):
    text = forms.CharField(max_length=10000)
    instruction = forms.CharField(max_length=500, required=False)


class AdaptCVForm(PayloadForm):
    cv_id = forms.IntegerField()
    job_id = forms.IntegerField(required=False)
    job_description = forms.CharField(max_length=10000, required=False)

    def clean(self):
        cleaned = super().clean()
        if not cleaned.get("job_id") and not cleaned.get("job_description"):
            raise forms.ValidationError("Provide a job_id or a job_description.")
        return cleaned


class TranslateCVForm(PayloadForm):
    cv_id = forms.IntegerField()
    language = forms.CharField(max_length=50)


class AnalyzeCVForm(PayloadForm):
    cv_id = forms.IntegerField()
    job_id = forms.IntegerField(required=False)
