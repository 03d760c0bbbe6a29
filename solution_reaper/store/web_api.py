"""Dataverse Web API component store (OData v4 over httpx)."""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from typing import Any

import httpx
import structlog

from solution_reaper.catalog import ComponentTable, table_for
from solution_reaper.exceptions import (
    ObjectNotFoundError,
    StoreFaultError,
    UnknownComponentKindError,
)
from solution_reaper.models.component import (
    ComponentKind,
    SolutionComponent,
    SolutionRef,
    StructuralMetadata,
)
from solution_reaper.models.dependency import DependencyKind, DependencyRecord
from solution_reaper.store.base import ComponentStore

log = structlog.get_logger("solution_reaper.store")

DEFAULT_API_VERSION = "9.2"

# Platform error codes meaning "no such object" (record / metadata).
_NOT_FOUND_CODES = frozenset({"0x80040217", "0x80060888"})

_SOLUTION_COMPONENT_COLUMNS = ",".join(
    [
        "solutioncomponentid",
        "objectid",
        "componenttype",
        "_solutionid_value",
        "_rootsolutioncomponentid_value",
    ]
)


class WebApiStore(ComponentStore):
    """Thin synchronous wrapper around the Dataverse Web API.

    No retries: a failed request surfaces as
    :class:`~solution_reaper.exceptions.StoreFaultError` immediately.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers: dict[str, str] = {
            "Accept": "application/json",
            "OData-MaxVersion": "4.0",
            "OData-Version": "4.0",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}/api/data/v{api_version}/",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    def close(self) -> None:
        self._client.close()

    # ── dependency queries ─────────────────────────────────────────────────

    def retrieve_dependencies_for_delete(
        self, kind: ComponentKind, object_id: uuid.UUID
    ) -> list[DependencyRecord]:
        return self._dependency_function("RetrieveDependenciesForDelete", kind, object_id)

    def retrieve_dependent_components(
        self, kind: ComponentKind, object_id: uuid.UUID
    ) -> list[DependencyRecord]:
        return self._dependency_function("RetrieveDependentComponents", kind, object_id)

    def retrieve_required_components(
        self, kind: ComponentKind, object_id: uuid.UUID
    ) -> list[DependencyRecord]:
        return self._dependency_function("RetrieveRequiredComponents", kind, object_id)

    def retrieve_missing_dependencies(self, solution_unique_name: str) -> list[DependencyRecord]:
        path = f"RetrieveMissingDependencies(SolutionUniqueName='{_quote(solution_unique_name)}')"
        rows = self._get_all(path, kind="solution", object_id=solution_unique_name)
        return [_parse_dependency(row) for row in rows]

    def _dependency_function(
        self, function: str, kind: ComponentKind, object_id: uuid.UUID
    ) -> list[DependencyRecord]:
        path = f"{function}(ObjectId={object_id},ComponentType={int(kind)})"
        rows = self._get_all(path, kind=kind, object_id=object_id)
        return [_parse_dependency(row) for row in rows]

    # ── reads ──────────────────────────────────────────────────────────────

    def fetch_record(
        self, kind: ComponentKind, object_id: uuid.UUID, columns: list[str]
    ) -> dict[str, Any]:
        table = _require_table(kind)
        params = {"$select": ",".join(columns)} if columns else None
        data = self._get_json(
            f"{table.entity_set}({object_id})", params, kind=kind, object_id=object_id
        )
        return {k: v for k, v in data.items() if not k.startswith("@odata.")}

    def fetch_metadata(self, kind: ComponentKind, object_id: uuid.UUID) -> StructuralMetadata:
        if kind == ComponentKind.ENTITY:
            data = self._get_json(
                f"EntityDefinitions({object_id})",
                {"$select": "MetadataId,LogicalName,IsManaged"},
                kind=kind,
                object_id=object_id,
            )
            return _entity_metadata(data)
        if kind == ComponentKind.ENTITY_RELATIONSHIP:
            data = self._get_json(
                f"RelationshipDefinitions({object_id})",
                {"$select": "MetadataId,SchemaName,RelationshipType,IsManaged"},
                kind=kind,
                object_id=object_id,
            )
            return StructuralMetadata(
                metadata_id=uuid.UUID(data["MetadataId"]),
                kind=kind,
                name=data["SchemaName"],
                is_managed=data.get("IsManaged"),
                relationship_type=data.get("RelationshipType"),
            )
        if kind == ComponentKind.OPTION_SET:
            data = self._get_json(
                f"GlobalOptionSetDefinitions({object_id})",
                None,
                kind=kind,
                object_id=object_id,
            )
            return StructuralMetadata(
                metadata_id=uuid.UUID(data["MetadataId"]),
                kind=kind,
                name=data["Name"],
                is_managed=data.get("IsManaged"),
            )
        if kind == ComponentKind.ATTRIBUTE:
            return self._fetch_attribute_metadata(object_id)
        raise UnknownComponentKindError(f"{kind.name} has no metadata endpoint")

    def _fetch_attribute_metadata(self, object_id: uuid.UUID) -> StructuralMetadata:
        # Attributes are only addressable through their entity, so expand every
        # entity's attributes filtered to the one metadata id.
        params = {
            "$select": "LogicalName",
            "$expand": (
                "Attributes($select=MetadataId,LogicalName,IsManaged;"
                f"$filter=MetadataId eq {object_id})"
            ),
        }
        for entity in self._get_all(
            "EntityDefinitions", params, kind=ComponentKind.ATTRIBUTE, object_id=object_id
        ):
            for attribute in entity.get("Attributes") or []:
                return StructuralMetadata(
                    metadata_id=uuid.UUID(attribute["MetadataId"]),
                    kind=ComponentKind.ATTRIBUTE,
                    name=attribute["LogicalName"],
                    is_managed=attribute.get("IsManaged"),
                    entity_logical_name=entity.get("LogicalName"),
                )
        raise ObjectNotFoundError(ComponentKind.ATTRIBUTE, object_id)

    def fetch_entity_metadata_by_name(self, logical_name: str) -> StructuralMetadata:
        data = self._get_json(
            f"EntityDefinitions(LogicalName='{_quote(logical_name)}')",
            {"$select": "MetadataId,LogicalName,IsManaged"},
            kind=ComponentKind.ENTITY,
            object_id=logical_name,
        )
        return _entity_metadata(data)

    def get_solution(self, solution_id: uuid.UUID) -> SolutionRef:
        data = self._get_json(
            f"solutions({solution_id})",
            {"$select": "solutionid,uniquename"},
            kind="solution",
            object_id=solution_id,
        )
        return SolutionRef(uuid.UUID(data["solutionid"]), data.get("uniquename"))

    def find_solution(self, unique_name: str) -> SolutionRef | None:
        params = {
            "$select": "solutionid,uniquename",
            "$filter": f"uniquename eq '{_quote(unique_name)}'",
        }
        for row in self._get_all("solutions", params, kind="solution", object_id=unique_name):
            return SolutionRef(uuid.UUID(row["solutionid"]), row.get("uniquename"))
        return None

    def solutions_containing(self, object_id: uuid.UUID) -> list[SolutionRef]:
        params = {
            "$select": "_solutionid_value",
            "$filter": f"objectid eq {object_id}",
            "$expand": "solutionid($select=solutionid,uniquename)",
        }
        found: dict[uuid.UUID, SolutionRef] = {}
        for row in self._get_all("solutioncomponents", params, object_id=object_id):
            solution = row.get("solutionid") or {}
            raw_id = solution.get("solutionid") or row.get("_solutionid_value")
            if not raw_id:
                continue
            sid = uuid.UUID(raw_id)
            found.setdefault(sid, SolutionRef(sid, solution.get("uniquename")))
        return list(found.values())

    def find_solution_component(
        self, object_id: uuid.UUID, solution_id: uuid.UUID
    ) -> SolutionComponent | None:
        params = {
            "$select": _SOLUTION_COMPONENT_COLUMNS,
            "$filter": f"objectid eq {object_id} and _solutionid_value eq {solution_id}",
            "$top": "1",
        }
        for row in self._get_all("solutioncomponents", params, object_id=object_id):
            return _parse_solution_component(row)
        return None

    def list_solution_components(
        self, solution_id: uuid.UUID, *, root_only: bool = False
    ) -> list[SolutionComponent]:
        flt = f"_solutionid_value eq {solution_id}"
        if root_only:
            flt += " and _rootsolutioncomponentid_value eq null"
        params = {"$select": _SOLUTION_COMPONENT_COLUMNS, "$filter": flt}
        return [
            _parse_solution_component(row)
            for row in self._get_all("solutioncomponents", params, object_id=solution_id)
        ]

    # ── writes ─────────────────────────────────────────────────────────────

    def delete(self, kind: ComponentKind, object_id: uuid.UUID) -> None:
        table = _require_table(kind)
        self._send("DELETE", f"{table.entity_set}({object_id})", kind=kind, object_id=object_id)

    def delete_structural_type(self, logical_name: str) -> None:
        self._send(
            "DELETE",
            f"EntityDefinitions(LogicalName='{_quote(logical_name)}')",
            kind=ComponentKind.ENTITY,
            object_id=logical_name,
        )

    def delete_relationship(self, schema_name: str) -> None:
        self._send(
            "DELETE",
            f"RelationshipDefinitions(SchemaName='{_quote(schema_name)}')",
            kind=ComponentKind.ENTITY_RELATIONSHIP,
            object_id=schema_name,
        )

    def delete_option_set(self, name: str) -> None:
        self._send(
            "DELETE",
            f"GlobalOptionSetDefinitions(Name='{_quote(name)}')",
            kind=ComponentKind.OPTION_SET,
            object_id=name,
        )

    def set_state(
        self, kind: ComponentKind, object_id: uuid.UUID, state: int, status: int
    ) -> None:
        self.update(kind, object_id, {"statecode": state, "statuscode": status})

    def update(self, kind: ComponentKind, object_id: uuid.UUID, fields: dict[str, Any]) -> None:
        table = _require_table(kind)
        self._send(
            "PATCH",
            f"{table.entity_set}({object_id})",
            json=fields,
            headers={"If-Match": "*"},
            kind=kind,
            object_id=object_id,
        )

    def add_component_to_solution(
        self,
        kind: ComponentKind,
        object_id: uuid.UUID,
        solution_name: str,
        *,
        include_subcomponents: bool = True,
    ) -> None:
        body = {
            "ComponentId": str(object_id),
            "ComponentType": int(kind),
            "SolutionUniqueName": solution_name,
            "AddRequiredComponents": False,
            "DoNotIncludeSubcomponents": not include_subcomponents,
        }
        self._send("POST", "AddSolutionComponent", json=body, kind=kind, object_id=object_id)

    def remove_component_from_solution(
        self, kind: ComponentKind, object_id: uuid.UUID, solution_name: str
    ) -> None:
        body = {
            "ComponentId": str(object_id),
            "ComponentType": int(kind),
            "SolutionUniqueName": solution_name,
        }
        self._send("POST", "RemoveSolutionComponent", json=body, kind=kind, object_id=object_id)

    # ── internal ───────────────────────────────────────────────────────────

    def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
        kind: Any = None,
        object_id: Any = None,
    ) -> httpx.Response:
        """Issue one request and translate failures into store exceptions."""
        try:
            resp = self._client.request(method, path, params=params, json=json, headers=headers)
        except httpx.TransportError as exc:
            log.warning("store.transport_error", method=method, path=path, error=str(exc))
            raise StoreFaultError(f"{method} {path} failed: {exc}") from exc

        if resp.is_success:
            return resp

        error_code, message = self._parse_error(resp)
        if resp.status_code == 404 or error_code in _NOT_FOUND_CODES:
            raise ObjectNotFoundError(kind, object_id, message)
        log.warning(
            "store.request_failed",
            method=method,
            path=path,
            status=resp.status_code,
            error_code=error_code,
        )
        raise StoreFaultError(
            message or f"{method} {path} returned {resp.status_code}",
            status_code=resp.status_code,
            error_code=error_code,
        )

    def _get_json(
        self,
        path: str,
        params: dict[str, str] | None,
        *,
        kind: Any = None,
        object_id: Any = None,
    ) -> dict[str, Any]:
        return self._send("GET", path, params=params, kind=kind, object_id=object_id).json()

    def _get_all(
        self,
        path: str,
        params: dict[str, str] | None = None,
        *,
        kind: Any = None,
        object_id: Any = None,
    ) -> Iterator[dict[str, Any]]:
        """Yield ``value`` rows, following ``@odata.nextLink`` pages."""
        url: str | None = path
        first = True
        while url:
            data = self._get_json(url, params if first else None, kind=kind, object_id=object_id)
            yield from data.get("value", [])
            url = data.get("@odata.nextLink")
            first = False

    @staticmethod
    def _parse_error(resp: httpx.Response) -> tuple[str | None, str | None]:
        """Extract ``(code, message)`` from an OData error body."""
        try:
            error = resp.json().get("error") or {}
        except ValueError:
            return None, None
        if not isinstance(error, dict):
            return None, None
        return error.get("code"), error.get("message")


def _require_table(kind: ComponentKind) -> ComponentTable:
    table = table_for(kind)
    if table is None:
        raise UnknownComponentKindError(f"{kind.name} is not a record-backed component kind")
    return table


def _quote(value: str) -> str:
    return value.replace("'", "''")


def _uuid_or_none(value: Any) -> uuid.UUID | None:
    return uuid.UUID(str(value)) if value else None


def _first(row: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if row.get(key) is not None:
            return row[key]
    return None


def _parse_dependency(row: dict[str, Any]) -> DependencyRecord:
    return DependencyRecord(
        dependency_id=uuid.UUID(row["dependencyid"]),
        dependency_kind=DependencyKind(int(row.get("dependencytype") or 0)),
        dependent_kind=ComponentKind(int(row["dependentcomponenttype"])),
        dependent_id=uuid.UUID(row["dependentcomponentobjectid"]),
        dependent_solution_id=_uuid_or_none(
            _first(
                row,
                "_dependentcomponentbasesolutionid_value",
                "dependentcomponentbasesolutionid",
            )
        ),
        required_kind=ComponentKind(int(row["requiredcomponenttype"])),
        required_id=uuid.UUID(row["requiredcomponentobjectid"]),
        required_solution_id=_uuid_or_none(
            _first(
                row,
                "_requiredcomponentbasesolutionid_value",
                "requiredcomponentbasesolutionid",
            )
        ),
    )


def _parse_solution_component(row: dict[str, Any]) -> SolutionComponent:
    return SolutionComponent(
        solution_component_id=uuid.UUID(row["solutioncomponentid"]),
        object_id=uuid.UUID(row["objectid"]),
        kind=ComponentKind(int(row["componenttype"])),
        solution_id=uuid.UUID(row["_solutionid_value"]),
        root_solution_component_id=_uuid_or_none(row.get("_rootsolutioncomponentid_value")),
    )


def _entity_metadata(data: dict[str, Any]) -> StructuralMetadata:
    return StructuralMetadata(
        metadata_id=uuid.UUID(data["MetadataId"]),
        kind=ComponentKind.ENTITY,
        name=data["LogicalName"],
        is_managed=data.get("IsManaged"),
    )
