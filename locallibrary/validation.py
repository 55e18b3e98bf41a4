"""Form validation and sanitization pipeline.

Incoming form data goes through three ordered stages before a controller
touches the store:

1. normalizers reshape raw fields (e.g. ``genre`` always becomes a list)
2. a pydantic form schema (see :mod:`locallibrary.schemas`) checks and
   coerces the normalized data; its failures become :class:`FieldError`
3. sanitizers trim and escape string values before they are stored

Every stage returns fresh data; nothing mutates the request form.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Annotated, Any, Callable, ClassVar, Dict, Iterable, List, Optional, Type

from markupsafe import escape
from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationError
from starlette.datastructures import UploadFile

FormData = Dict[str, Any]
Normalizer = Callable[[FormData], FormData]
Sanitizer = Callable[[FormData], FormData]


@dataclass(frozen=True)
class FieldError:
    param: str
    msg: str
    value: Any = None


@dataclass
class FormResult:
    data: FormData
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def form_to_dict(form) -> FormData:
    """Flatten a multi-value form: repeated keys become lists, uploads are skipped."""
    data: FormData = {}
    for key in form.keys():
        values = [v for v in form.getlist(key) if not isinstance(v, UploadFile)]
        if not values:
            continue
        data[key] = values[0] if len(values) == 1 else values
    return data


def blank_to_none(value: Any) -> Any:
    """Browsers post untouched optional inputs as empty strings."""
    if isinstance(value, str):
        return value.strip() or None
    return value


OptionalDate = Annotated[Optional[date], BeforeValidator(blank_to_none)]


class FormModel(BaseModel):
    """
    Base schema for an HTML form.

    ``messages`` maps a field name, or ``"<field>:<pydantic error type>"``
    for a more specific case, to the text shown next to the form. Fields
    without an entry fall back to pydantic's own message.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    messages: ClassVar[Dict[str, str]] = {}

    @classmethod
    def field_errors(cls, exc: ValidationError, data: FormData) -> List[FieldError]:
        errors: List[FieldError] = []
        seen = set()
        for error in exc.errors():
            name = str(error["loc"][0]) if error["loc"] else ""
            if name in seen:
                continue
            seen.add(name)
            msg = cls.messages.get(f"{name}:{error['type']}") or cls.messages.get(name) or error["msg"]
            errors.append(FieldError(name, msg, data.get(name)))
        return errors


def clean(value: Any) -> Any:
    """Trim and HTML-escape a string, or each string of a list."""
    if isinstance(value, list):
        return [clean(v) for v in value]
    if isinstance(value, str):
        return str(escape(value.strip()))
    return value


# ----------------------------------------------------------------------
# Normalizers
# ----------------------------------------------------------------------
def as_list(name: str) -> Normalizer:
    def normalize(data: FormData) -> FormData:
        value = data.get(name)
        if value is None:
            value = []
        elif not isinstance(value, list):
            value = [value]
        return {**data, name: list(value)}

    return normalize


# ----------------------------------------------------------------------
# Sanitizers
# ----------------------------------------------------------------------
def trim_escape(*names: str) -> Sanitizer:
    def sanitize(data: FormData) -> FormData:
        return {**data, **{name: clean(data[name]) for name in names if name in data}}

    return sanitize


def trim_escape_all() -> Sanitizer:
    def sanitize(data: FormData) -> FormData:
        return {key: clean(value) for key, value in data.items()}

    return sanitize


class FormPipeline:
    """Ordered normalize -> validate -> sanitize stages for one form."""

    def __init__(
        self,
        schema: Type[FormModel],
        normalizers: Iterable[Normalizer] = (),
        sanitizers: Iterable[Sanitizer] = (),
    ):
        self.schema = schema
        self.normalizers = list(normalizers)
        self.sanitizers = list(sanitizers)

    def run(self, raw: FormData) -> FormResult:
        """
        Run every stage over ``raw``.

        On success ``data`` holds the schema's coerced fields. On failure it
        holds the submitted values of the schema's fields as they were, so
        the form can be shown again with what the user typed.
        """
        data = dict(raw)
        for normalize in self.normalizers:
            data = normalize(data)
        errors: List[FieldError] = []
        try:
            data = self.schema.model_validate(data).model_dump()
        except ValidationError as exc:
            errors = self.schema.field_errors(exc, data)
            data = {name: data.get(name) for name in self.schema.model_fields}
        for sanitize in self.sanitizers:
            data = sanitize(data)
        return FormResult(data, errors)


__all__ = [
    "FieldError",
    "FormResult",
    "FormModel",
    "FormPipeline",
    "OptionalDate",
    "form_to_dict",
    "blank_to_none",
    "clean",
    "as_list",
    "trim_escape",
    "trim_escape_all",
]
