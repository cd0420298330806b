"""
The CV document model.

A CV's ``data`` is a plain JSON document with three parts: the ``theme``
(visual settings), the ``personal_info`` header and an ordered list of
``sections``.  Each section holds a list of free-form entries and a
``visibility`` map whose ``False`` values hide entry fields from the
rendered output without deleting them.

Everything here works on plain dicts and lists.  The editor operations
never mutate their input; they return a new document so a batch of
operations can be applied atomically and so history snapshots stay
untouched.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, Iterable, List, Optional

from django.core.exceptions import ValidationError
from django.utils.text import slugify

TEMPLATE_NAMES = (
    "classic",
    "modern",
    "compact",
    "contemporary",
    "double",
    "double_colored",
    "elegant",
    "high_performer",
    "ivy_league",
    "minimal",
    "multicolumn",
    "polished",
    "single",
    "stylish",
    "timeline",
)

DEFAULT_THEME = {
    "template_name": "classic",
    "font_family": "Arial",
    "font_size": "12px",
    "bg_color": "#FFFFFF",
    "text_color": "#000000",
    "page_margin": "0.5in",
    "section_spacing": "14pt",
    "line_spacing": "1.5",
    "pattern": "none",
}

PERSONAL_INFO_FIELDS = ("full_name", "job_title", "email", "phone", "address", "website", "image")

DEFAULT_SECTIONS = (
    ("summary", "Summary"),
    ("experience", "Experience"),
    ("education", "Education"),
    ("skills", "Skills"),
    ("languages", "Languages"),
)

Document = Dict[str, Any]


def default_theme(template_name: str = "classic") -> Dict[str, str]:
    theme = dict(DEFAULT_THEME)
    theme["template_name"] = template_name
    return theme


def default_document() -> Document:
    """Starter document used for new CVs and as the base of the first diff."""
    return {
        "theme": default_theme(),
        "personal_info": dict({name: "" for name in PERSONAL_INFO_FIELDS}, visibility={}),
        "sections": [
            {"id": section_id, "name": name, "entries": [], "visibility": {}}
            for section_id, name in DEFAULT_SECTIONS
        ],
    }


# ----- Validation -----


def _check_visibility(visibility: Any, where: str) -> Dict[str, bool]:
    if visibility is None:
        return {}
    if not isinstance(visibility, dict):
        raise ValidationError(f"{where}: visibility must be an object")
    for key, flag in visibility.items():
        if not isinstance(flag, bool):
            raise ValidationError(f"{where}: visibility of '{key}' must be true or false")
    return dict(visibility)


def _normalize_theme(theme: Any, base: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    if theme is None:
        theme = {}
    if not isinstance(theme, dict):
        raise ValidationError("theme must be an object")
    merged = dict(base or DEFAULT_THEME)
    for key, value in theme.items():
        if key not in DEFAULT_THEME:
            continue
        if not isinstance(value, str):
            raise ValidationError(f"theme.{key} must be a string")
        merged[key] = value
    if merged["template_name"] not in TEMPLATE_NAMES:
        raise ValidationError(f"Unknown template '{merged['template_name']}'")
    return merged


def _normalize_personal_info(info: Any, base: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    if info is None:
        info = {}
    if not isinstance(info, dict):
        raise ValidationError("personal_info must be an object")
    merged = copy.deepcopy(base) if base else {name: "" for name in PERSONAL_INFO_FIELDS}
    merged.setdefault("visibility", {})
    for key, value in info.items():
        if key == "visibility":
            merged["visibility"] = {
                **merged["visibility"],
                **_check_visibility(value, "personal_info"),
            }
        elif key in PERSONAL_INFO_FIELDS:
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"personal_info.{key} must be a string")
            merged[key] = value or ""
    return merged


def _normalize_entries(entries: Any, where: str) -> List[Dict[str, Any]]:
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ValidationError(f"{where}: entries must be a list")
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ValidationError(f"{where}: entry {index} must be an object")
    return copy.deepcopy(entries)


def _normalize_section(section: Any, index: int) -> Dict[str, Any]:
    """Validate one section; a missing id is left as ``None`` for the caller to fill."""
    if not isinstance(section, dict):
        raise ValidationError(f"Section {index} must be an object")
    name = section.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"Section {index} needs a name")
    section_id = section.get("id") or None
    if section_id is not None and not isinstance(section_id, str):
        raise ValidationError(f"Section {index} id must be a string")
    where = f"Section '{section_id or name.strip()}'"
    return {
        "id": section_id,
        "name": name.strip(),
        "entries": _normalize_entries(section.get("entries"), where),
        "visibility": _check_visibility(section.get("visibility"), where),
    }


def normalize_document(data: Any) -> Document:
    """Validate ``data`` and fill in missing parts with defaults.

    Raises ``ValidationError`` for unknown template names, a ``sections``
    value that is not a list, duplicate section ids, entries that are not
    objects and visibility flags that are not booleans.  Sections sent
    without an id get one derived from their name.
    """
    if data is None:
        return default_document()
    if not isinstance(data, dict):
        raise ValidationError("CV data must be an object")
    sections = data.get("sections", [])
    if not isinstance(sections, list):
        raise ValidationError("sections must be a list")
    normalized = [_normalize_section(section, i) for i, section in enumerate(sections)]
    seen = set()
    for section in normalized:
        if section["id"] is None:
            continue
        if section["id"] in seen:
            raise ValidationError(f"Duplicate section id '{section['id']}'")
        seen.add(section["id"])
    for section in normalized:
        if section["id"] is None:
            section["id"] = _free_section_id(section["name"], seen)
            seen.add(section["id"])
    return {
        "theme": _normalize_theme(data.get("theme")),
        "personal_info": _normalize_personal_info(data.get("personal_info")),
        "sections": normalized,
    }


# ----- Editor operations -----


def _find_section(doc: Document, section_id: str) -> Dict[str, Any]:
    for section in doc["sections"]:
        if section["id"] == section_id:
            return section
    raise ValidationError(f"Unknown section '{section_id}'")


def _free_section_id(name: str, existing) -> str:
    base = slugify(name) or slugify(name, allow_unicode=True) or "section"
    candidate, counter = base, 2
    while candidate in existing:
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate


def _unique_section_id(doc: Document, name: str) -> str:
    return _free_section_id(name, {section["id"] for section in doc["sections"]})


def set_theme(doc: Document, theme: Dict[str, Any]) -> Document:
    new = copy.deepcopy(doc)
    new["theme"] = _normalize_theme(theme, base=doc["theme"])
    return new


def set_personal_info(doc: Document, info: Dict[str, Any]) -> Document:
    new = copy.deepcopy(doc)
    new["personal_info"] = _normalize_personal_info(info, base=doc["personal_info"])
    return new


def add_section(doc: Document, section: Dict[str, Any]) -> Document:
    new = copy.deepcopy(doc)
    section = dict(section or {})
    if not section.get("id") and isinstance(section.get("name"), str):
        section["id"] = _unique_section_id(new, section["name"])
    normalized = _normalize_section(section, len(new["sections"]))
    if any(s["id"] == normalized["id"] for s in new["sections"]):
        raise ValidationError(f"Duplicate section id '{normalized['id']}'")
    new["sections"].append(normalized)
    return new


def remove_section(doc: Document, section_id: str) -> Document:
    _find_section(doc, section_id)
    new = copy.deepcopy(doc)
    new["sections"] = [s for s in new["sections"] if s["id"] != section_id]
    return new


def rename_section(doc: Document, section_id: str, name: str) -> Document:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Section name cannot be empty")
    new = copy.deepcopy(doc)
    _find_section(new, section_id)["name"] = name.strip()
    return new


def update_section_entries(doc: Document, section_id: str, entries: List[Dict[str, Any]]) -> Document:
    new = copy.deepcopy(doc)
    section = _find_section(new, section_id)
    section["entries"] = _normalize_entries(entries, f"Section '{section_id}'")
    return new


def update_section_visibility(doc: Document, section_id: str, visibility: Dict[str, bool]) -> Document:
    new = copy.deepcopy(doc)
    section = _find_section(new, section_id)
    section["visibility"] = {
        **section.get("visibility", {}),
        **_check_visibility(visibility, f"Section '{section_id}'"),
    }
    return new


def reorder_sections(doc: Document, source_index: int, destination_index: int) -> Document:
    count = len(doc["sections"])
    for index in (source_index, destination_index):
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < count:
            raise ValidationError(f"Section index {index!r} is out of range")
    new = copy.deepcopy(doc)
    moved = new["sections"].pop(source_index)
    new["sections"].insert(destination_index, moved)
    return new


OPERATIONS: Dict[str, Callable[..., Document]] = {
    "set_theme": lambda doc, op: set_theme(doc, op.get("theme")),
    "set_personal_info": lambda doc, op: set_personal_info(doc, op.get("personal_info")),
    "add_section": lambda doc, op: add_section(doc, op.get("section")),
    "remove_section": lambda doc, op: remove_section(doc, op.get("section_id")),
    "rename_section": lambda doc, op: rename_section(doc, op.get("section_id"), op.get("name")),
    "update_section_entries": lambda doc, op: update_section_entries(
        doc, op.get("section_id"), op.get("entries")
    ),
    "update_section_visibility": lambda doc, op: update_section_visibility(
        doc, op.get("section_id"), op.get("visibility")
    ),
    "reorder_sections": lambda doc, op: reorder_sections(
        doc, op.get("source_index"), op.get("destination_index")
    ),
}


def apply_operations(doc: Document, operations: Iterable[Dict[str, Any]]) -> Document:
    """Apply editor operations in order; any failure discards the whole batch.

    Each operation is an object with a ``type`` naming one of
    :data:`OPERATIONS` plus that operation's arguments.
    """
    if not isinstance(operations, list):
        raise ValidationError("operations must be a list")
    current = doc
    for index, op in enumerate(operations):
        if not isinstance(op, dict) or op.get("type") not in OPERATIONS:
            raise ValidationError(f"Operation {index}: unknown operation type")
        try:
            current = OPERATIONS[op["type"]](current, op)
        except ValidationError as exc:
            raise ValidationError(f"Operation {index} ({op['type']}): {'; '.join(exc.messages)}")
    return current


# ----- Read side -----


def is_visible(visibility: Optional[Dict[str, bool]], field: str) -> bool:
    """A field is shown unless its visibility flag is explicitly false."""
    return (visibility or {}).get(field) is not False


def visible_view(doc: Document) -> Document:
    """The document as the renderers see it, hidden fields removed."""
    info = doc.get("personal_info", {})
    info_visibility = info.get("visibility", {})
    view_info = {
        name: info.get(name, "")
        for name in PERSONAL_INFO_FIELDS
        if is_visible(info_visibility, name)
    }
    sections = []
    for section in doc.get("sections", []):
        visibility = section.get("visibility", {})
        entries = [
            {key: value for key, value in entry.items() if is_visible(visibility, key)}
            for entry in section.get("entries", [])
        ]
        sections.append({"id": section["id"], "name": section["name"], "entries": entries})
    return {"theme": dict(doc.get("theme", DEFAULT_THEME)), "personal_info": view_info, "sections": sections}


def _keyed(items: List[Any]) -> Optional[Dict[str, Any]]:
    """Index a list of objects by their ``id``, or ``None`` when not possible."""
    if not items:
        return {}
    if not all(isinstance(item, dict) and isinstance(item.get("id"), str) for item in items):
        return None
    keyed = {item["id"]: item for item in items}
    return keyed if len(keyed) == len(items) else None


def _diff(old: Any, new: Any, path: str, changes: List[Dict[str, Any]]) -> None:
    if isinstance(old, dict) and isinstance(new, dict):
        for key in old:
            sub = f"{path}.{key}" if path else str(key)
            if key not in new:
                changes.append({"type": "delete", "field": sub, "old_value": old[key], "new_value": None})
            else:
                _diff(old[key], new[key], sub, changes)
        for key in new:
            if key not in old:
                sub = f"{path}.{key}" if path else str(key)
                changes.append({"type": "add", "field": sub, "old_value": None, "new_value": new[key]})
        return
    if isinstance(old, list) and isinstance(new, list):
        old_keyed, new_keyed = _keyed(old), _keyed(new)
        if old_keyed is not None and new_keyed is not None:
            _diff(old_keyed, new_keyed, path, changes)
            return
        if all(isinstance(item, dict) for item in old + new):
            _diff(dict(enumerate(old)), dict(enumerate(new)), path, changes)
            return
    if old != new:
        changes.append({"type": "modify", "field": path, "old_value": old, "new_value": new})


def diff_documents(old: Document, new: Document) -> List[Dict[str, Any]]:
    """List the changes turning ``old`` into ``new``.

    Paths are dotted; sections are addressed by id and entries by index,
    e.g. ``sections.experience.entries.0.company``.
    """
    changes: List[Dict[str, Any]] = []
    _diff(old, new, "", changes)
    return changes


def _flatten(value: Any) -> str:
    if isinstance(value, dict):
        return ", ".join(f"{k}: {_flatten(v)}" for k, v in value.items() if _flatten(v))
    if isinstance(value, list):
        return ", ".join(_flatten(v) for v in value if _flatten(v))
    return "" if value is None else str(value).strip()


def entry_lines(entry: Dict[str, Any]) -> List[str]:
    """Render an entry's values as text lines, in field order."""
    lines = []
    for value in entry.values():
        text = _flatten(value)
        if text:
            lines.append(text)
    return lines


def document_text(doc: Document) -> str:
    """Plain-text rendering of the visible content, one block per section."""
    view = visible_view(doc)
    info = view["personal_info"]
    lines = []
    if info.get("full_name"):
        lines.append(info["full_name"])
    if info.get("job_title"):
        lines.append(info["job_title"])
    contact = [info[name] for name in ("email", "phone", "address", "website") if info.get(name)]
    if contact:
        lines.append(" | ".join(contact))
    for section in view["sections"]:
        if not section["entries"]:
            continue
        lines.append("")
        lines.append(section["name"].upper())
        for entry in section["entries"]:
            lines.extend(entry_lines(entry))
    return "\n".join(lines).strip()
