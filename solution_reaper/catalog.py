"""Record-backed component kinds and the tables that store them."""

from __future__ import annotations

from dataclasses import dataclass

from solution_reaper.models.component import ComponentKind


@dataclass(frozen=True)
class ComponentTable:
    """Where the store keeps records of one component kind."""

    logical_name: str
    entity_set: str
    primary_key: str
    name_attribute: str = "name"

    def projection(self, *extra: str) -> list[str]:
        """Key, name and managed flag, plus any *extra* columns."""
        columns = [self.primary_key, self.name_attribute, "ismanaged"]
        columns.extend(c for c in extra if c not in columns)
        return columns


_TABLES: dict[ComponentKind, ComponentTable] = {
    ComponentKind.WORKFLOW: ComponentTable("workflow", "workflows", "workflowid"),
    ComponentKind.CONNECTION_ROLE: ComponentTable(
        "connectionrole", "connectionroles", "connectionroleid"
    ),
    ComponentKind.SDK_MESSAGE: ComponentTable("sdkmessage", "sdkmessages", "sdkmessageid"),
    ComponentKind.SDK_MESSAGE_PROCESSING_STEP: ComponentTable(
        "sdkmessageprocessingstep",
        "sdkmessageprocessingsteps",
        "sdkmessageprocessingstepid",
    ),
    ComponentKind.SDK_MESSAGE_PROCESSING_STEP_IMAGE: ComponentTable(
        "sdkmessageprocessingstepimage",
        "sdkmessageprocessingstepimages",
        "sdkmessageprocessingstepimageid",
    ),
    ComponentKind.PLUGIN_TYPE: ComponentTable("plugintype", "plugintypes", "plugintypeid"),
    ComponentKind.PLUGIN_ASSEMBLY: ComponentTable(
        "pluginassembly", "pluginassemblies", "pluginassemblyid"
    ),
    ComponentKind.ROLE: ComponentTable("role", "roles", "roleid"),
    ComponentKind.SAVED_QUERY: ComponentTable("savedquery", "savedqueries", "savedqueryid"),
    ComponentKind.SERVICE_ENDPOINT: ComponentTable(
        "serviceendpoint", "serviceendpoints", "serviceendpointid"
    ),
    ComponentKind.SYSTEM_FORM: ComponentTable("systemform", "systemforms", "formid"),
    ComponentKind.WEB_RESOURCE: ComponentTable("webresource", "webresourceset", "webresourceid"),
    ComponentKind.REPORT: ComponentTable("report", "reports", "reportid"),
    ComponentKind.CONTRACT_TEMPLATE: ComponentTable(
        "contracttemplate", "contracttemplates", "contracttemplateid"
    ),
    ComponentKind.EMAIL_TEMPLATE: ComponentTable("template", "templates", "templateid", "title"),
    ComponentKind.KB_ARTICLE_TEMPLATE: ComponentTable(
        "kbarticletemplate", "kbarticletemplates", "kbarticletemplateid", "title"
    ),
    ComponentKind.RIBBON_CUSTOMIZATION: ComponentTable(
        "ribboncustomization", "ribboncustomizations", "ribboncustomizationid", "entity"
    ),
    ComponentKind.SITE_MAP: ComponentTable("sitemap", "sitemaps", "sitemapid", "sitemapnameunique"),
    ComponentKind.MAIL_MERGE_TEMPLATE: ComponentTable(
        "mailmergetemplate", "mailmergetemplates", "mailmergetemplateid"
    ),
    ComponentKind.SLA: ComponentTable("sla", "slas", "slaid"),
    ComponentKind.CUSTOM_CONTROL: ComponentTable(
        "customcontrol", "customcontrols", "customcontrolid"
    ),
    ComponentKind.FIELD_SECURITY_PROFILE: ComponentTable(
        "fieldsecurityprofile", "fieldsecurityprofiles", "fieldsecurityprofileid"
    ),
}


def table_for(kind: ComponentKind) -> ComponentTable | None:
    return _TABLES.get(kind)


# Workflow column values used by the deletion strategies.
WORKFLOW_STATE_DRAFT = 0
WORKFLOW_STATE_ACTIVATED = 1
WORKFLOW_STATUS_DRAFT = 1
WORKFLOW_STATUS_ACTIVATED = 2
WORKFLOW_CATEGORY_BUSINESS_PROCESS_FLOW = 4
