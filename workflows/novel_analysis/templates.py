"""Named prompt templates and per-session prompt drafts.

Two separate stores:
- TemplateRegistry: named templates per analysis kind. Built-in templates
  come from DEFAULT_PROMPTS and cannot be changed; user templates can be
  added, renamed, edited and deleted.
- PromptDrafts: the PromptSpec each kind will actually run with in this
  session.

Copies only go one way at a time: load_template() copies a template into a
draft, save_draft_as_template() / update_template_from_draft() copy a draft
into the registry. Editing a draft never touches a template.
"""

import logging
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, field_validator

from workflows.novel_analysis.prompts import DEFAULT_PROMPTS
from workflows.novel_analysis.state import AnalysisKind, PromptSpec

logger = logging.getLogger(__name__)

BUILT_IN_TEMPLATE_NAME = "System default"


class PromptTemplate(BaseModel):
    """A named, stored PromptSpec for one analysis kind."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    kind: AnalysisKind
    prompt: PromptSpec
    built_in: bool = False

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Template name must not be blank")
        return value


def built_in_template(kind: AnalysisKind) -> PromptTemplate:
    return PromptTemplate(
        id=f"default-{kind.value}",
        name=BUILT_IN_TEMPLATE_NAME,
        kind=kind,
        prompt=DEFAULT_PROMPTS[kind],
        built_in=True,
    )


class TemplateRegistry:
    """Built-in plus user-defined templates, keyed by id."""

    def __init__(self, user_templates: Optional[list[PromptTemplate]] = None):
        self._built_ins = {kind: built_in_template(kind) for kind in AnalysisKind}
        self._user: dict[str, PromptTemplate] = {}
        for template in user_templates or []:
            if template.built_in:
                raise ValueError(f"Template {template.id} is marked built-in")
            self._user[template.id] = template

    def for_kind(self, kind: AnalysisKind) -> list[PromptTemplate]:
        """The built-in template first, then user templates in creation order."""
        return [self._built_ins[kind]] + [t for t in self._user.values() if t.kind == kind]

    def get(self, template_id: str) -> PromptTemplate:
        for template in self._built_ins.values():
            if template.id == template_id:
                return template
        try:
            return self._user[template_id]
        except KeyError:
            raise KeyError(f"No template with id {template_id!r}") from None

    def user_templates(self) -> list[PromptTemplate]:
        return list(self._user.values())

    def add(self, kind: AnalysisKind, name: str, prompt: PromptSpec) -> PromptTemplate:
        template = PromptTemplate(
            id=uuid4().hex[:9],
            name=name,
            kind=kind,
            prompt=prompt,
        )
        self._user[template.id] = template
        logger.info(f"Saved template '{template.name}' ({kind.value})")
        return template

    def update(self, template_id: str, name: str, prompt: PromptSpec) -> PromptTemplate:
        existing = self._require_user_template(template_id)
        updated = existing.model_copy(update={"name": name.strip(), "prompt": prompt})
        if not updated.name:
            raise ValueError("Template name must not be blank")
        self._user[template_id] = updated
        return updated

    def delete(self, template_id: str) -> None:
        self._require_user_template(template_id)
        del self._user[template_id]

    def _require_user_template(self, template_id: str) -> PromptTemplate:
        template = self.get(template_id)
        if template.built_in:
            raise ValueError(f"Built-in template {template_id!r} cannot be modified")
        return template


class PromptDrafts:
    """The editable PromptSpec per kind for the current session."""

    def __init__(self, initial: Optional[dict[AnalysisKind, PromptSpec]] = None):
        self._drafts: dict[AnalysisKind, PromptSpec] = dict(DEFAULT_PROMPTS)
        if initial:
            self._drafts.update(initial)

    def get(self, kind: AnalysisKind) -> PromptSpec:
        return self._drafts[kind]

    def set(self, kind: AnalysisKind, prompt: PromptSpec) -> None:
        self._drafts[kind] = prompt

    def reset(self, kind: AnalysisKind) -> None:
        self._drafts[kind] = DEFAULT_PROMPTS[kind]

    def load_template(self, template: PromptTemplate) -> PromptSpec:
        """Copy a template into the draft for its kind."""
        self._drafts[template.kind] = template.prompt
        return template.prompt


def save_draft_as_template(
    drafts: PromptDrafts,
    registry: TemplateRegistry,
    kind: AnalysisKind,
    name: str,
) -> PromptTemplate:
    """Copy the current draft for kind into a new user template."""
    return registry.add(kind, name, drafts.get(kind))


def update_template_from_draft(
    drafts: PromptDrafts,
    registry: TemplateRegistry,
    template_id: str,
    name: str,
) -> PromptTemplate:
    """Overwrite a user template with the current draft of its kind."""
    template = registry.get(template_id)
    return registry.update(template_id, name, drafts.get(template.kind))
