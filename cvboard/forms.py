"""Form fields and base classes shared by the apps' payload forms."""

from django import forms
from django.core.exceptions import ValidationError
from django.db import models


class StringListField(forms.JSONField):
    """A JSON list of non-empty strings, stripped of surrounding blanks."""

    def __init__(self, *, max_items=None, **kwargs):
        self.max_items = max_items
        kwargs.setdefault("required", False)
        super().__init__(**kwargs)

    def to_python(self, value):
        if isinstance(value, str) and not value.strip().startswith("["):
            # Accept comma separated strings as sent by plain HTML forms.
            value = [part for part in value.split(",")]
        value = super().to_python(value)
        if value in (None, ""):
            return []
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ValidationError("Enter a list of strings.")
        cleaned = [item.strip() for item in value if item.strip()]
        if self.max_items is not None and len(cleaned) > self.max_items:
            raise ValidationError(f"At most {self.max_items} items are allowed.")
        return cleaned


class DictField(forms.JSONField):
    """A JSON object."""

    def to_python(self, value):
        value = super().to_python(value)
        if value in (None, ""):
            return {}
        if not isinstance(value, dict):
            raise ValidationError("Enter a JSON object.")
        return value


class PayloadForm(forms.Form):
    """Form bound to a decoded JSON payload.

    With ``partial=True`` every field becomes optional and
    :meth:`changed_data_from_payload` returns only the keys the client
    actually sent, which is what partial updates need.  Fields required on
    creation still refuse blank values when they are sent.
    """

    def __init__(self, data=None, *args, partial: bool = False, **kwargs):
        self.partial = partial
        self.payload = data if data is not None else {}
        super().__init__(self.payload, *args, **kwargs)
        self.required_fields = {name for name, field in self.fields.items() if field.required}
        if partial:
            for field in self.fields.values():
                field.required = False

    def clean(self):
        cleaned = super().clean()
        if self.partial:
            for name in self.required_fields:
                field = self.fields[name]
                if name in self.payload and name in cleaned and cleaned[name] in field.empty_values:
                    self.add_error(name, field.error_messages["required"])
        return cleaned

    def changed_data_from_payload(self):
        return {name: self.cleaned_data[name] for name in self.fields if name in self.payload}


def apply_changes(instance, changes):
    """Copy validated values onto a model instance.

    ``None`` is skipped for columns that cannot store it, so clients may
    send ``null`` to mean "leave unchanged" there.  Text columns get an
    empty string instead.
    """
    for name, value in changes.items():
        field = instance._meta.get_field(name)
        if value is None and not field.null:
            if isinstance(field, (models.CharField, models.TextField)):
                value = ""
            else:
                continue
        setattr(instance, name, value)
