"""Per-category field schemas for lab site content.

Each category maps to one remote collection. The schema lists the fields the
admin forms know about and which of them are required; any other field is
accepted untouched. ``year`` is handled by the store's year normalization and
never appears here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from labsite.core.field_ops import FieldDef, FieldType, validate_field


@dataclass
class CategorySchema:
    """Field definitions and required-field list for one category."""

    name: str
    label: str
    fields: dict[str, FieldDef] = field(default_factory=dict)
    required: tuple[str, ...] = ()
    group: str | None = None


def _s(description: str, **kwargs: Any) -> FieldDef:
    return FieldDef(FieldType.STRING, description, **kwargs)


def _i(description: str, **kwargs: Any) -> FieldDef:
    return FieldDef(FieldType.INT, description, **kwargs)


CATEGORY_SCHEMAS: dict[str, CategorySchema] = {
    # -- Resources --
    "lectures": CategorySchema(
        name="lectures",
        label="Lectures",
        group="resources",
        fields={
            "title": _s("Lecture title"),
            "description": _s("Short description"),
            "instructor": _s("Instructor name"),
            "duration": _s("Duration, e.g. '1h 30m'"),
            "pdfUrl": _s("Link to the lecture notes PDF"),
        },
        required=("title", "description", "instructor", "duration", "pdfUrl"),
    ),
    "books": CategorySchema(
        name="books",
        label="Books",
        group="resources",
        fields={
            "title": _s("Book title"),
            "authors": _s("Authors"),
            "edition": _s("Edition"),
            "url": _s("Link"),
        },
        required=("title", "authors", "edition", "url"),
    ),
    "videos": CategorySchema(
        name="videos",
        label="Videos",
        group="resources",
        fields={
            "title": _s("Video title"),
            "instructor": _s("Instructor name"),
            "duration": _s("Duration"),
            "thumbnail": _s("Thumbnail image URL"),
            "videoUrl": _s("Video URL"),
        },
        required=("title", "instructor", "duration", "thumbnail", "videoUrl"),
    ),
    "researchPapers": CategorySchema(
        name="researchPapers",
        label="Research Papers",
        group="resources",
        fields={
            "title": _s("Paper title"),
            "description": _s("Short description"),
            "url": _s("Paper URL"),
        },
        required=("title", "description", "url"),
    ),
    # -- Site sections --
    "events": CategorySchema(
        name="events",
        label="Events",
        fields={
            "title": _s("Event title"),
            "description": _s("Event description"),
            "date": _s("Event date (YYYY-MM-DD)"),
            "time": _s("Start time"),
            "location": _s("Venue"),
            "image": _s("Banner image URL"),
            "capacity": _i("Maximum attendees", min_val=0),
            "registered": _i("Registered attendees", min_val=0),
        },
        required=("title", "description", "date", "time", "location", "image"),
    ),
    "courses": CategorySchema(
        name="courses",
        label="Courses",
        fields={
            "title": _s("Course title"),
            "courseCode": _s("Course code"),
            "credits": _i("Credits", min_val=0),
            "offeredTo": _s("Programmes the course is offered to"),
            "description": _s("Course description"),
            "instructor": _s("Instructor name"),
            "duration": _s("Duration"),
            "students": _i("Number of students", min_val=0),
            "rating": _s("Rating (1-5)"),
            "image": _s("Cover image URL"),
            "prerequisites": FieldDef(FieldType.DICT, "Prerequisites (mandatory, desirable, other)"),
            "courseOutcomes": FieldDef(FieldType.LIST, "Course outcomes"),
            "weeklyPlan": FieldDef(FieldType.LIST, "Weekly plan entries"),
            "assessment": FieldDef(FieldType.LIST, "Assessment components {type, contribution}"),
            "resources": FieldDef(FieldType.DICT, "Course resources (textbooks)"),
            "nextStart": _s("Next start date"),
        },
        required=(
            "title",
            "courseCode",
            "credits",
            "offeredTo",
            "description",
            "instructor",
            "duration",
        ),
    ),
    "blogs": CategorySchema(
        name="blogs",
        label="Blogs",
        fields={
            "title": _s("Post title"),
            "content": _s("Post body"),
            "author": _s("Author name"),
            "date": _s("Publication date"),
            "image": _s("Cover image URL"),
            "tags": FieldDef(FieldType.STRING_LIST, "Tags"),
        },
        required=("title", "content"),
    ),
    "members": CategorySchema(
        name="members",
        label="Members",
        fields={
            "name": _s("Full name"),
            "role": _s("Role in the lab"),
            "specialization": _s("Research specialization"),
            "email": _s("Contact email"),
            "github": _s("GitHub profile URL"),
            "linkedin": _s("LinkedIn profile URL"),
            "image": _s("Photo URL"),
            "isHead": FieldDef(FieldType.BOOL, "Lab head"),
        },
        required=("name", "role", "email", "image"),
    ),
    "labs": CategorySchema(
        name="labs",
        label="Labs",
        fields={
            "title": _s("Lab title"),
            "description": _s("Lab description"),
            "duration": _s("Duration"),
            "instructor": _s("Instructor name"),
            "capacity": _i("Seats", min_val=0),
            "enrolled": _i("Enrolled students", min_val=0),
            "prerequisites": FieldDef(FieldType.STRING_LIST, "Prerequisites"),
            "tools": FieldDef(FieldType.STRING_LIST, "Tools used"),
            "image": _s("Cover image URL"),
        },
        required=("title", "description", "duration", "instructor", "image"),
    ),
}

RESOURCE_CATEGORIES = tuple(
    name for name, schema in CATEGORY_SCHEMAS.items() if schema.group == "resources"
)


def get_schema(category: str, schemas: dict[str, CategorySchema] | None = None) -> CategorySchema | None:
    """Look up the schema for *category*."""
    return (schemas if schemas is not None else CATEGORY_SCHEMAS).get(category)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def validate_record(schema: CategorySchema, fields: dict[str, Any]) -> list[str]:
    """Check *fields* against *schema*.

    Returns:
        List of error messages (empty if valid).
    """
    errors = [
        f"{name}: required field is missing or empty."
        for name in schema.required
        if _is_blank(fields.get(name))
    ]
    for name, value in fields.items():
        if name == "year" or value is None:
            continue
        errors.extend(validate_field(name, value, schema.fields))
    return errors
