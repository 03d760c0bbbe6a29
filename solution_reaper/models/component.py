"""Component identity types: kinds, references and descriptors."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import IntEnum

from solution_reaper.exceptions import UnknownComponentKindError


class ComponentKind(IntEnum):
    """Platform component type codes.

    Codes missing from this table still parse: they become pseudo-members
    named ``UNKNOWN_<code>`` so a dependency row never fails on an
    unfamiliar kind.
    """

    ENTITY = 1
    ATTRIBUTE = 2
    RELATIONSHIP = 3
    ATTRIBUTE_PICKLIST_VALUE = 4
    ATTRIBUTE_LOOKUP_VALUE = 5
    VIEW_ATTRIBUTE = 6
    LOCALIZED_LABEL = 7
    RELATIONSHIP_EXTRA_CONDITION = 8
    OPTION_SET = 9
    ENTITY_RELATIONSHIP = 10
    ENTITY_RELATIONSHIP_ROLE = 11
    ENTITY_RELATIONSHIP_RELATIONSHIPS = 12
    MANAGED_PROPERTY = 13
    ENTITY_KEY = 14
    INDEX = 18
    ROLE = 20
    ROLE_PRIVILEGE = 21
    DISPLAY_STRING = 22
    DISPLAY_STRING_MAP = 23
    FORM = 24
    ORGANIZATION = 25
    SAVED_QUERY = 26
    WORKFLOW = 29
    REPORT = 31
    REPORT_ENTITY = 32
    REPORT_CATEGORY = 33
    REPORT_VISIBILITY = 34
    ATTACHMENT = 35
    EMAIL_TEMPLATE = 36
    CONTRACT_TEMPLATE = 37
    KB_ARTICLE_TEMPLATE = 38
    MAIL_MERGE_TEMPLATE = 39
    DUPLICATE_RULE = 44
    DUPLICATE_RULE_CONDITION = 45
    ENTITY_MAP = 46
    ATTRIBUTE_MAP = 47
    RIBBON_COMMAND = 48
    RIBBON_CONTEXT_GROUP = 49
    RIBBON_CUSTOMIZATION = 50
    RIBBON_RULE = 52
    RIBBON_TAB_TO_COMMAND_MAP = 53
    RIBBON_DIFF = 55
    SAVED_QUERY_VISUALIZATION = 59
    SYSTEM_FORM = 60
    WEB_RESOURCE = 61
    SITE_MAP = 62
    CONNECTION_ROLE = 63
    COMPLEX_CONTROL = 64
    HIERARCHY_RULE = 65
    CUSTOM_CONTROL = 66
    CUSTOM_CONTROL_DEFAULT_CONFIG = 68
    FIELD_SECURITY_PROFILE = 70
    FIELD_PERMISSION = 71
    PLUGIN_TYPE = 90
    PLUGIN_ASSEMBLY = 91
    SDK_MESSAGE_PROCESSING_STEP = 92
    SDK_MESSAGE_PROCESSING_STEP_IMAGE = 93
    SERVICE_ENDPOINT = 95
    ROUTING_RULE = 150
    ROUTING_RULE_ITEM = 151
    SLA = 152
    SLA_ITEM = 153
    CONVERT_RULE = 154
    CONVERT_RULE_ITEM = 155
    MOBILE_OFFLINE_PROFILE = 161
    MOBILE_OFFLINE_PROFILE_ITEM = 162
    SIMILARITY_RULE = 165
    DATA_SOURCE_MAPPING = 166
    SDK_MESSAGE = 201
    SDK_MESSAGE_FILTER = 202
    SDK_MESSAGE_PAIR = 203
    SDK_MESSAGE_REQUEST = 204
    SDK_MESSAGE_REQUEST_FIELD = 205
    SDK_MESSAGE_RESPONSE = 206
    SDK_MESSAGE_RESPONSE_FIELD = 207
    IMPORT_MAP = 208
    WEB_WIZARD = 210
    CANVAS_APP = 300
    CONNECTOR = 371
    CONNECTOR_V2 = 372
    ENVIRONMENT_VARIABLE_DEFINITION = 380
    ENVIRONMENT_VARIABLE_VALUE = 381

    @classmethod
    def _missing_(cls, value: object) -> ComponentKind | None:
        if isinstance(value, int) and not isinstance(value, bool):
            pseudo = int.__new__(cls, value)
            pseudo._name_ = f"UNKNOWN_{value}"
            pseudo._value_ = value
            return pseudo
        return None

    @property
    def is_known(self) -> bool:
        return not self.name.startswith("UNKNOWN_")

    @classmethod
    def parse(cls, value: str | int | ComponentKind) -> ComponentKind:
        """Parse a kind from its code, its name or a loose spelling of it.

        ``"Workflow"``, ``"workflow"``, ``"sdk-message-processing-step"``,
        ``"SdkMessageProcessingStep"`` and ``"29"`` are all accepted.
        """
        if isinstance(value, ComponentKind):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        text = str(value).strip()
        if text.lstrip("-").isdigit():
            return cls(int(text))
        wanted = _squash(text)
        for member in cls:
            if _squash(member.name) == wanted:
                return member
        raise UnknownComponentKindError(f"unknown component kind: {value!r}")


def _squash(name: str) -> str:
    return name.replace("_", "").replace("-", "").replace(" ", "").lower()


# Kinds whose definitions live in the metadata (schema) service rather than
# in ordinary records.
STRUCTURAL_KINDS = frozenset(
    {
        ComponentKind.ENTITY,
        ComponentKind.ATTRIBUTE,
        ComponentKind.ENTITY_RELATIONSHIP,
        ComponentKind.OPTION_SET,
    }
)


@dataclass(frozen=True)
class ComponentRef:
    """A (kind, id) pair identifying one component in the store."""

    kind: ComponentKind
    object_id: uuid.UUID

    @property
    def key(self) -> tuple[int, uuid.UUID]:
        """Identity used by visited-sets."""
        return (int(self.kind), self.object_id)

    @classmethod
    def of(cls, kind: str | int | ComponentKind, object_id: str | uuid.UUID) -> ComponentRef:
        oid = object_id if isinstance(object_id, uuid.UUID) else uuid.UUID(str(object_id))
        return cls(ComponentKind.parse(kind), oid)

    def __str__(self) -> str:
        return f"{self.kind.name} {self.object_id}"


@dataclass(frozen=True)
class SolutionRef:
    """A solution (grouping) a component can belong to."""

    solution_id: uuid.UUID
    unique_name: str | None = None

    def __str__(self) -> str:
        return self.unique_name or str(self.solution_id)


@dataclass
class ComponentDescriptor:
    """Uniform description of a component.

    ``display_name``, ``logical_name`` and ``is_managed`` are ``None`` when
    the object behind the reference could not be read.
    """

    ref: ComponentRef
    display_name: str | None = None
    logical_name: str | None = None
    is_managed: bool | None = None
    solutions: list[SolutionRef] = field(default_factory=list)
    depth: int = 0
    parent: ComponentRef | None = None

    @property
    def kind(self) -> ComponentKind:
        return self.ref.kind

    @property
    def object_id(self) -> uuid.UUID:
        return self.ref.object_id

    @property
    def is_resolved(self) -> bool:
        return self.display_name is not None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.name,
            "kind_code": int(self.kind),
            "object_id": str(self.object_id),
            "display_name": self.display_name,
            "logical_name": self.logical_name,
            "is_managed": self.is_managed,
            "solutions": [s.unique_name or str(s.solution_id) for s in self.solutions],
            "depth": self.depth,
            "parent": str(self.parent.object_id) if self.parent else None,
        }

    def __str__(self) -> str:
        return f"{self.kind.name}: {self.display_name}"


@dataclass(frozen=True)
class SolutionComponent:
    """Membership row linking a component to one solution."""

    solution_component_id: uuid.UUID
    object_id: uuid.UUID
    kind: ComponentKind
    solution_id: uuid.UUID
    root_solution_component_id: uuid.UUID | None = None

    @property
    def ref(self) -> ComponentRef:
        return ComponentRef(self.kind, self.object_id)


@dataclass(frozen=True)
class StructuralMetadata:
    """Normalised schema metadata for entities, attributes, relationships
    and global option sets."""

    metadata_id: uuid.UUID
    kind: ComponentKind
    name: str
    is_managed: bool | None = None
    relationship_type: str | None = None
    entity_logical_name: str | None = None
