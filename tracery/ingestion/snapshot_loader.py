"""
Snapshot Loader
===============

Loads an environment snapshot (a JSON export of automation artifacts) and
turns it into typed records with parsed definitions.

Supported Shapes:
- snake_case keys as written by tracery's own exporters
- Raw platform attribute names (workflowid, primaryentity, statecode,
  sdkmessagefilterid.primaryobjecttypecode, ...)

Design Decisions:
-----------------
1. A malformed record is skipped and reported; it never aborts the load
2. Definitions are parsed here, once, so the analyzers only ever see typed
   FlowDefinition / ScriptAnalysis / ProcessDefinition objects
3. Web resource content may be base64 (as stored by the platform) or plain
   text
4. A missing file or a snapshot that is not a JSON object is an error
"""

import base64
import binascii
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from ..model.artifacts import (
    EntityMetadata, PluginStep, Flow, BusinessRule, ClassicWorkflow,
    WebResource, BusinessProcessFlow, EntityBlueprint
)
from ..parsers import (
    parse_flow_definition, parse_script, BusinessRuleParser, WorkflowMarkupParser
)


FLOW_STATES = {1: "Active", 2: "Suspended"}
WORKFLOW_STATES = {0: "Draft", 1: "Active", 2: "Suspended"}
BUSINESS_RULE_SCOPES = {1: "AllForms", 2: "SpecificForm"}

# Entity placeholder used by the platform for plugins not bound to a table
NO_ENTITY = "none"


@dataclass
class Snapshot:
    """Typed contents of one environment snapshot."""
    environment: str = "unknown"
    entities: list = field(default_factory=list)  # List of EntityMetadata
    plugins: list = field(default_factory=list)  # List of PluginStep
    flows: list = field(default_factory=list)  # List of Flow
    business_rules: list = field(default_factory=list)  # List of BusinessRule
    classic_workflows: list = field(default_factory=list)  # List of ClassicWorkflow
    web_resources: list = field(default_factory=list)  # List of WebResource
    business_process_flows: list = field(default_factory=list)  # List of BusinessProcessFlow
    skipped_records: int = 0

    def blueprints(self) -> list[EntityBlueprint]:
        """Group automation by entity.

        Entities come from the metadata list plus any entity that owns a
        plugin, flow, business rule or workflow. Sorted by logical name.
        """
        metadata = {e.logical_name: e for e in self.entities}
        blueprints: dict[str, EntityBlueprint] = {}

        def blueprint_for(entity: Optional[str]) -> Optional[EntityBlueprint]:
            if not entity or entity.lower() == NO_ENTITY:
                return None
            key = entity.lower()
            if key not in blueprints:
                blueprints[key] = EntityBlueprint(entity=metadata.get(key) or EntityMetadata(key))
            return blueprints[key]

        for key in metadata:
            blueprint_for(key)

        for plugin in self.plugins:
            bp = blueprint_for(plugin.entity)
            if bp:
                bp.plugins.append(plugin)
        for flow in self.flows:
            bp = blueprint_for(flow.entity)
            if bp:
                bp.flows.append(flow)
        for rule in self.business_rules:
            bp = blueprint_for(rule.entity)
            if bp:
                bp.business_rules.append(rule)
        for workflow in self.classic_workflows:
            bp = blueprint_for(workflow.entity)
            if bp:
                bp.classic_workflows.append(workflow)

        return [blueprints[key] for key in sorted(blueprints)]


class SnapshotLoader:
    """Loader for environment snapshot JSON.

    Usage:
        loader = SnapshotLoader(verbose=True)
        snapshot = loader.load_file("contoso-dev.json")

        # Or from an already-parsed dictionary
        snapshot = loader.load_dict(data)
    """

    def __init__(self, verbose: bool = False):
        """Initialize the snapshot loader.

        Args:
            verbose: Whether to print progress messages
        """
        self.verbose = verbose

    def load_file(self, file_path: str) -> Snapshot:
        """Load a snapshot JSON file.

        Args:
            file_path: Path to the JSON file

        Returns:
            Snapshot with typed, parsed records

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not a JSON object
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Snapshot not found: {file_path}")

        if self.verbose:
            print(f"[*] Loading {path.name}...")

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        return self.load_dict(data)

    def load_dict(self, data: dict) -> Snapshot:
        """Build a Snapshot from parsed JSON.

        Raises:
            ValueError: If data is not a JSON object
        """
        if not isinstance(data, dict):
            raise ValueError("Snapshot must be a JSON object")

        snapshot = Snapshot(environment=str(data.get("environment") or "unknown"))

        sections: list[tuple[str, Callable[[dict], Any], list]] = [
            ("entities", self._entity, snapshot.entities),
            ("plugins", self._plugin, snapshot.plugins),
            ("flows", self._flow, snapshot.flows),
            ("business_rules", self._business_rule, snapshot.business_rules),
            ("classic_workflows", self._classic_workflow, snapshot.classic_workflows),
            ("web_resources", self._web_resource, snapshot.web_resources),
            ("business_process_flows", self._business_process_flow, snapshot.business_process_flows),
        ]

        for key, build, target in sections:
            records = data.get(key) or []
            if not isinstance(records, list):
                self._warn(f"'{key}' is not a list, ignoring")
                continue
            for index, record in enumerate(records):
                try:
                    if not isinstance(record, dict):
                        raise TypeError("record is not an object")
                    target.append(build(record))
                except (AttributeError, KeyError, TypeError, ValueError) as e:
                    snapshot.skipped_records += 1
                    self._warn(f"Skipping malformed {key} record #{index}: {e}")

            if self.verbose and target:
                print(f"[+] Loaded {len(target)} {key.replace('_', ' ')}")

        return snapshot

    def _warn(self, message: str) -> None:
        if self.verbose:
            print(f"[!] {message}")

    # -------------------------------------------------------------------------
    # Record builders
    # -------------------------------------------------------------------------

    @staticmethod
    def _entity(record: dict) -> EntityMetadata:
        display = _first(record, "display_name", "DisplayName")
        if isinstance(display, dict):
            display = (display.get("UserLocalizedLabel") or {}).get("Label")

        return EntityMetadata(
            logical_name=_required(record, "logical_name", "LogicalName"),
            display_name=display,
            entity_set_name=_first(record, "entity_set_name", "EntitySetName"),
        )

    @staticmethod
    def _plugin(record: dict) -> PluginStep:
        plugin_type = _lookup(record, "plugintypeid")
        message = _lookup(record, "sdkmessageid")
        message_filter = _lookup(record, "sdkmessagefilterid")

        filtering = _first(record, "filtering_attributes", "filteringattributes") or []
        if isinstance(filtering, str):
            filtering = [a.strip() for a in filtering.split(",") if a.strip()]

        return PluginStep(
            id=_required(record, "id", "sdkmessageprocessingstepid"),
            name=record.get("name"),
            type_name=_first(record, "type_name") or plugin_type.get("typename") or "Unknown",
            entity=_first(record, "entity") or message_filter.get("primaryobjecttypecode") or NO_ENTITY,
            message=_first(record, "message") or message.get("name") or "Unknown",
            stage=int(_required(record, "stage")),
            rank=int(record.get("rank", 1)),
            mode=int(record.get("mode", 0)),
            description=record.get("description"),
            assembly_name=_first(record, "assembly_name") or plugin_type.get("assemblyname"),
            filtering_attributes=list(filtering),
        )

    @staticmethod
    def _flow(record: dict) -> Flow:
        return Flow(
            id=_required(record, "id", "workflowid"),
            name=_required(record, "name"),
            entity=_first(record, "entity", "primaryentity"),
            state=_state(record, FLOW_STATES),
            scope=int(record.get("scope") or 0),
            description=record.get("description"),
            definition=parse_flow_definition(record.get("clientdata")),
        )

    @staticmethod
    def _business_rule(record: dict) -> BusinessRule:
        scope = record.get("scope", "AllForms")
        if isinstance(scope, int):
            scope = BUSINESS_RULE_SCOPES.get(scope, "Entity")

        return BusinessRule(
            id=_required(record, "id", "workflowid"),
            name=_required(record, "name"),
            entity=_required(record, "entity", "primaryentity"),
            state=_state(record, FLOW_STATES),
            scope=scope,
            description=record.get("description"),
            definition=BusinessRuleParser.parse(record.get("xaml")),
        )

    @staticmethod
    def _classic_workflow(record: dict) -> ClassicWorkflow:
        return ClassicWorkflow(
            id=_required(record, "id", "workflowid"),
            name=_required(record, "name"),
            entity=_required(record, "entity", "primaryentity"),
            mode=int(record.get("mode") or 0),
            mode_name=_first(record, "mode_name"),
            trigger_on_create=bool(_first(record, "trigger_on_create", "triggeroncreate")),
            trigger_on_update=bool(_first(record, "trigger_on_update", "triggeronupdate")),
            trigger_on_delete=bool(_first(record, "trigger_on_delete", "triggerondelete")),
            on_demand=bool(_first(record, "on_demand", "ondemand")),
            state=_state(record, WORKFLOW_STATES),
            description=record.get("description"),
            xaml=record.get("xaml") or "",
        )

    @staticmethod
    def _web_resource(record: dict) -> WebResource:
        name = _required(record, "name")
        resource_type = int(_first(record, "type", "resource_type", "webresourcetype") or 3)
        content = decode_content(record.get("content"))

        # Only JavaScript resources are analyzed
        analysis = parse_script(content, name) if resource_type == 3 and content else None

        return WebResource(
            id=_required(record, "id", "webresourceid"),
            name=name,
            resource_type=resource_type,
            display_name=_first(record, "display_name", "displayname"),
            content=content,
            description=record.get("description"),
            analysis=analysis,
        )

    @staticmethod
    def _business_process_flow(record: dict) -> BusinessProcessFlow:
        return BusinessProcessFlow(
            id=_required(record, "id", "workflowid"),
            name=_required(record, "name"),
            primary_entity=_required(record, "primary_entity", "primaryentity"),
            state=_state(record, FLOW_STATES),
            definition=WorkflowMarkupParser.parse(record.get("xaml")),
        )


def decode_content(content: Optional[str]) -> Optional[str]:
    """Decode base64 web resource content, passing plain text through."""
    if not content:
        return None
    try:
        return base64.b64decode(content, validate=True).decode('utf-8')
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return content


def _first(record: dict, *keys: str) -> Any:
    """Value of the first key present with a non-None value."""
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    return None


def _required(record: dict, *keys: str) -> Any:
    value = _first(record, *keys)
    if value is None or value == "":
        raise KeyError(f"missing '{keys[0]}'")
    return value


def _lookup(record: dict, key: str) -> dict:
    """Expanded lookup object; bare GUID strings carry no usable fields."""
    value = record.get(key)
    return value if isinstance(value, dict) else {}


def _state(record: dict, codes: dict) -> str:
    """Readable state from either a state name or a numeric statecode."""
    state = record.get("state")
    if isinstance(state, str) and state:
        return state
    return codes.get(record.get("statecode"), "Draft")
