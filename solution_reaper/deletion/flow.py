"""Rewriting of business process flow definitions (workflow XAML)."""

from __future__ import annotations

import io
import re
import xml.etree.ElementTree as ET
from xml.sax.saxutils import quoteattr

ACTION_COMPOSITE_AQN = (
    "Microsoft.Crm.Workflow.Activities.ActionComposite, Microsoft.Crm.Workflow, "
    "Version=8.0.0.0, Culture=neutral, PublicKeyToken=31bf3856ad364e35"
)
MXSWA_NAMESPACE = (
    "clr-namespace:Microsoft.Xrm.Sdk.Workflow.Activities;"
    "assembly=Microsoft.Xrm.Sdk.Workflow, Version=8.0.0.0, Culture=neutral, "
    "PublicKeyToken=31bf3856ad364e35"
)
ACTIVITY_REFERENCE = f"{{{MXSWA_NAMESPACE}}}ActivityReference"

_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>\s*")
_ROOT_NAME = re.compile(r"^<[^\s/>]+")
_DECLARED = re.compile(r"\sxmlns(?::([^\s=]+))?\s*=")
_AUTO_PREFIX = re.compile(r"ns\d+$")


def strip_composite_activities(xaml: str) -> tuple[str, int]:
    """Remove every ActionComposite ``mxswa:ActivityReference`` element.

    Returns ``(document, removed)``. When nothing matches the input is
    returned untouched. Otherwise the rewritten document keeps the source's
    prefixes and every namespace declaration on the root element, including
    ones only referenced from attribute values (``mc:Ignorable``).
    """
    match = _XML_DECLARATION.match(xaml)
    prolog = match.group(0) if match else ""
    body = xaml[len(prolog) :]

    declarations = _namespace_declarations(body)
    root = ET.fromstring(body)
    parents = {child: parent for parent in root.iter() for child in parent}

    removed = 0
    for elem in list(root.iter(ACTIVITY_REFERENCE)):
        if elem.get("AssemblyQualifiedName") == ACTION_COMPOSITE_AQN:
            parents[elem].remove(elem)
            removed += 1
    if not removed:
        return xaml, 0

    document = _serialize(root, declarations)
    return prolog + _restore_declarations(document, declarations), removed


def _namespace_declarations(xaml: str) -> dict[str, str]:
    """Prefix -> URI for every declaration in the document (first one wins)."""
    found: dict[str, str] = {}
    for _event, (prefix, uri) in ET.iterparse(io.StringIO(xaml), events=("start-ns",)):
        found.setdefault(prefix, uri)
    return found


def _restore_declarations(document: str, declarations: dict[str, str]) -> str:
    # ElementTree drops declarations no element or attribute name uses.
    end = document.index(">")
    start_tag = document[:end]
    present = {m.group(1) or "" for m in _DECLARED.finditer(start_tag)}
    missing = [(p, u) for p, u in declarations.items() if p not in present]
    if not missing:
        return document
    extra = "".join(
        f" xmlns:{p}={quoteattr(u)}" if p else f" xmlns={quoteattr(u)}" for p, u in missing
    )
    name_end = _ROOT_NAME.match(document).end()
    return document[:name_end] + extra + document[name_end:]


def _serialize(root: ET.Element, declarations: dict[str, str]) -> str:
    # register_namespace writes to a process-wide map; put it back afterwards.
    saved = dict(ET._namespace_map)
    try:
        for prefix, uri in declarations.items():
            if not _AUTO_PREFIX.match(prefix):
                ET.register_namespace(prefix, uri)
        return ET.tostring(root, encoding="unicode")
    finally:
        ET._namespace_map.clear()
        ET._namespace_map.update(saved)
