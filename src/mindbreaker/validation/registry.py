"""Validatable entity kinds and the references that point at them.

Adding a new validatable type, or enabling reject-with-reason for an
existing one, is a change to this table only.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from mindbreaker.db.base import Base
from mindbreaker.db.models import (
    Expedition,
    Organization,
    Quest,
    QuestExercise,
    QuestProgress,
    SavedExpedition,
    SavedQuest,
)
from mindbreaker.errors import InvalidInput


@dataclass(frozen=True)
class Reference:
    """A foreign-key column that must follow a record when it is merged away.

    ``unique_with`` names the column that, together with ``column``, forms a
    unique key (per-user tables); colliding rows are dropped before rewrite.
    """

    model: type[Base]
    column: str
    unique_with: str | None = None


@dataclass(frozen=True)
class EntityKind:
    type: str
    resource_type: str
    label: str
    model: type[Base]
    name_field: str
    summary_field: str
    extra_fields: tuple[str, ...] = ()
    supports_reject: bool = False
    supports_draft: bool = False
    references: tuple[Reference, ...] = field(default_factory=tuple)

    @property
    def column_names(self) -> frozenset[str]:
        return frozenset(self.model.__table__.columns.keys())


ORGANIZATIONS = EntityKind(
    type="organizations",
    resource_type="organization",
    label="Organization",
    model=Organization,
    name_field="name",
    summary_field="description",
    extra_fields=("website_url",),
    references=(
        Reference(Quest, "organization_id"),
        Reference(Expedition, "organization_id"),
    ),
)

QUESTS = EntityKind(
    type="quests",
    resource_type="quest",
    label="Quest",
    model=Quest,
    name_field="title",
    summary_field="summary",
    supports_reject=True,
    supports_draft=True,
    references=(
        Reference(QuestProgress, "quest_id", unique_with="user_id"),
        Reference(SavedQuest, "quest_id", unique_with="user_id"),
        Reference(QuestExercise, "quest_id"),
    ),
)

EXPEDITIONS = EntityKind(
    type="expeditions",
    resource_type="expedition",
    label="Expedition",
    model=Expedition,
    name_field="title",
    summary_field="summary",
    references=(
        Reference(Quest, "expedition_id"),
        Reference(SavedExpedition, "expedition_id", unique_with="user_id"),
    ),
)

ENTITY_KINDS: dict[str, EntityKind] = {k.type: k for k in (ORGANIZATIONS, QUESTS, EXPEDITIONS)}
_BY_RESOURCE_TYPE: dict[str, EntityKind] = {k.resource_type: k for k in ENTITY_KINDS.values()}


def get_kind(type_: str) -> EntityKind:
    """Look up a kind by its URL segment (``organizations``, ``quests``, ``expeditions``)."""
    kind = ENTITY_KINDS.get(type_)
    if kind is None:
        raise InvalidInput("Invalid type")
    return kind


def get_kind_for_resource(resource_type: str) -> EntityKind:
    """Look up a kind by an edit request's ``resource_type`` (``quest``, ...)."""
    kind = _BY_RESOURCE_TYPE.get(resource_type)
    if kind is None:
        raise InvalidInput(f"Unknown resource type: {resource_type}")
    return kind
