"""
Flow Definition Parser
======================

Parses cloud flow definitions (the clientdata JSON stored with each flow)
into a FlowDefinition.

Extraction Steps:
- Trigger: the first declared trigger, classified as Dataverse, Manual,
  Scheduled or Other, with the Dataverse event inferred from its type
- Actions: recursive walk over nested, else-branch and switch-case actions
  counting actions, collecting connection references and HTTP calls
- Dataverse actions: create/update/delete/get/list operations with a
  best-effort target entity
- Scope: the run-as setting

Design Decisions:
-----------------
1. The parser never raises; malformed input yields FlowDefinition() with
   parse_error set
2. Each extracted fact carries its own Confidence
3. Target-entity extraction is tiered; every fallback tier is less certain
   than the one before it
"""

import json
import re
from typing import Any, Optional, Union

from ..model.schemas import (
    FlowDefinition, ExternalCall, DataverseAction,
    TriggerType, TriggerEvent, ScopeType, Operation, Confidence
)
from .common import extract_domain


# Keyword lists checked in order against the operation id, then action name
OPERATION_KEYWORDS = [
    (Operation.CREATE, ("create",)),
    (Operation.UPDATE, ("update", "patch")),
    (Operation.DELETE, ("delete",)),
    (Operation.GET, ("get", "retrieve")),
    (Operation.LIST, ("list",)),
]

# Action types that never touch table data
NON_DATA_ACTION_TYPES = {
    "if", "foreach", "scope", "switch", "until", "compose", "parsejson",
    "initializevariable", "setvariable", "incrementvariable",
    "decrementvariable", "appendtoarrayvariable", "appendtostringvariable",
    "terminate", "response", "http", "wait", "query", "select", "table",
    "join", "expression",
}

# Generic words that are not entity names when found at the end of an action name
GENERIC_NAME_SUFFIXES = {
    "a", "an", "the", "new", "row", "rows", "record", "records", "item",
    "items", "id", "by", "selected", "all", "details", "response",
}

# Dataverse trigger message codes (subscriptionRequest/message)
TRIGGER_MESSAGE_CODES = {
    1: TriggerEvent.CREATE,
    2: TriggerEvent.DELETE,
    3: TriggerEvent.UPDATE,
    4: TriggerEvent.CREATE_OR_UPDATE,
}

RUN_AS_SCOPES = {
    "0": ScopeType.USER,
    "1": ScopeType.BUSINESS_UNIT,
    "2": ScopeType.ORGANIZATION,
}

_PATH_ENTITY_PATTERN = re.compile(
    r"/(?:tables|entities)/(?:@\{encodeURIComponent\(encodeURIComponent\(')?"
    r"([A-Za-z_][A-Za-z0-9_]*)",
    re.IGNORECASE
)


class FlowDefinitionParser:
    """Parser for flow clientdata JSON.

    Usage:
        definition = FlowDefinitionParser.parse(flow_record["clientdata"])
        if definition.trigger_event == TriggerEvent.UPDATE:
            ...
    """

    @classmethod
    def parse(cls, clientdata: Union[str, dict, None]) -> FlowDefinition:
        """Parse a flow definition.

        Args:
            clientdata: Raw clientdata JSON string (or an already decoded dict)

        Returns:
            FlowDefinition; the default instance when input is empty or invalid
        """
        if not clientdata:
            return FlowDefinition()

        try:
            data = json.loads(clientdata) if isinstance(clientdata, str) else clientdata
            if not isinstance(data, dict):
                raise ValueError("clientdata is not a JSON object")

            definition = cls._get_definition(data)
            trigger_type, trigger_event, conditions = cls._extract_trigger(definition)

            result = FlowDefinition(
                trigger_type=trigger_type,
                trigger_event=trigger_event,
                trigger_conditions=conditions,
                scope_type=cls._extract_scope_type(data),
            )
            cls._extract_actions(definition, result)
            return result

        except (ValueError, TypeError, AttributeError) as e:
            return FlowDefinition(parse_error=f"Failed to parse flow definition: {e}")

    @staticmethod
    def _get_definition(data: dict) -> dict:
        properties = data.get("properties") or {}
        definition = properties.get("definition") or data.get("definition") or {}
        return definition if isinstance(definition, dict) else {}

    @staticmethod
    def _extract_scope_type(data: dict) -> ScopeType:
        """Map the run-as setting (0/1/2) to a scope."""
        properties = data.get("properties") or {}
        run_as = properties.get("runAs", data.get("runAs"))
        return RUN_AS_SCOPES.get(str(run_as).strip(), ScopeType.UNKNOWN)

    # -------------------------------------------------------------------------
    # Trigger
    # -------------------------------------------------------------------------

    @classmethod
    def _extract_trigger(
        cls, definition: dict
    ) -> tuple[TriggerType, TriggerEvent, Optional[str]]:
        """Classify the first trigger of the flow."""
        triggers = definition.get("triggers")
        if not triggers or not isinstance(triggers, dict):
            return TriggerType.OTHER, TriggerEvent.UNKNOWN, None

        # Flows have a single trigger in practice
        trigger = next(iter(triggers.values()))
        if not isinstance(trigger, dict):
            return TriggerType.OTHER, TriggerEvent.UNKNOWN, None

        kind = str(trigger.get("type") or "").lower()
        inputs = trigger.get("inputs") or {}
        parameters = inputs.get("parameters") or {}

        if "dataverse" in kind or "commondataservice" in kind or cls._has_dataverse_host(inputs):
            event = cls._dataverse_event(kind, inputs, parameters)
            conditions = (
                inputs.get("filterExpression")
                or parameters.get("subscriptionRequest/filterexpression")
            )
            return TriggerType.DATAVERSE, event, conditions

        if "manual" in kind or "request" in kind:
            return TriggerType.MANUAL, TriggerEvent.MANUAL, None

        if "recurrence" in kind or "schedule" in kind:
            return TriggerType.SCHEDULED, TriggerEvent.SCHEDULED, None

        return TriggerType.OTHER, TriggerEvent.UNKNOWN, None

    @staticmethod
    def _has_dataverse_host(inputs: dict) -> bool:
        host = inputs.get("host") or {}
        api_id = str(host.get("apiId") or host.get("connectionName") or "").lower()
        return "commondataservice" in api_id

    @staticmethod
    def _dataverse_event(kind: str, inputs: dict, parameters: dict) -> TriggerEvent:
        """Infer the Dataverse event from the trigger type identifier."""
        message = str(inputs.get("message") or "").lower()

        if "create" in kind:
            if "update" in kind or message == "update":
                return TriggerEvent.CREATE_OR_UPDATE
            return TriggerEvent.CREATE
        if "update" in kind:
            return TriggerEvent.UPDATE
        if "delete" in kind:
            return TriggerEvent.DELETE

        # Webhook-style triggers carry the message as a numeric parameter
        code = parameters.get("subscriptionRequest/message")
        try:
            return TRIGGER_MESSAGE_CODES.get(int(code), TriggerEvent.UNKNOWN)
        except (TypeError, ValueError):
            return TriggerEvent.UNKNOWN

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    @classmethod
    def _extract_actions(cls, definition: dict, result: FlowDefinition) -> None:
        """Walk the action tree and fill counts, calls and references."""
        actions = definition.get("actions")
        if not actions or not isinstance(actions, dict):
            return

        connection_references: list[str] = []

        def process_action(action: Any, action_name: str) -> None:
            if not isinstance(action, dict):
                return

            result.actions_count += 1
            action_type = str(action.get("type") or "")
            inputs = action.get("inputs") if isinstance(action.get("inputs"), dict) else {}

            call = cls._extract_external_call(action_type, inputs, action_name)
            if call:
                result.external_calls.append(call)

            host = inputs.get("host") or {}
            reference = host.get("connectionName") or (host.get("connection") or {}).get("name")
            if reference and reference not in connection_references:
                connection_references.append(reference)

            dataverse_action = cls._extract_dataverse_action(action_type, inputs, action_name)
            if dataverse_action:
                result.dataverse_actions.append(dataverse_action)

            for child_name, child in cls._child_actions(action):
                process_action(child, child_name)

        for name, action in actions.items():
            process_action(action, name)

        result.connection_references = connection_references

    @staticmethod
    def _child_actions(action: dict) -> list[tuple[str, Any]]:
        """Nested actions: scope/condition body, else branch, switch cases."""
        children = []

        nested = action.get("actions")
        if isinstance(nested, dict):
            children.extend(nested.items())

        else_branch = action.get("else")
        if isinstance(else_branch, dict) and isinstance(else_branch.get("actions"), dict):
            children.extend(else_branch["actions"].items())

        cases = action.get("cases")
        if isinstance(cases, dict):
            for case in cases.values():
                if isinstance(case, dict) and isinstance(case.get("actions"), dict):
                    children.extend(case["actions"].items())

        default = action.get("default")
        if isinstance(default, dict) and isinstance(default.get("actions"), dict):
            children.extend(default["actions"].items())

        return children

    @staticmethod
    def _extract_external_call(
        action_type: str, inputs: dict, action_name: str
    ) -> Optional[ExternalCall]:
        """Record an ExternalCall for HTTP-shaped actions."""
        if action_type not in ("Http", "OpenApiConnection"):
            return None

        url = inputs.get("uri") or inputs.get("path")
        if not url or not isinstance(url, str):
            return None

        method = inputs.get("method")
        if action_type == "Http" and inputs.get("uri") and method:
            confidence = Confidence.HIGH
        elif action_type == "OpenApiConnection" and inputs.get("path"):
            confidence = Confidence.MEDIUM
        else:
            confidence = Confidence.LOW

        return ExternalCall(
            url=url,
            domain=extract_domain(url),
            method=method or None,
            action_name=action_name,
            confidence=confidence,
        )

    @classmethod
    def _extract_dataverse_action(
        cls, action_type: str, inputs: dict, action_name: str
    ) -> Optional[DataverseAction]:
        """Detect a table operation and its target entity."""
        if action_type.lower() in NON_DATA_ACTION_TYPES:
            return None

        host = inputs.get("host") or {}
        operation_id = str(host.get("operationId") or "").lower()

        operation = cls._match_operation(operation_id) or cls._match_operation(action_name.lower())
        if operation is None:
            return None

        target, confidence = cls._extract_target_entity(inputs, action_name)
        return DataverseAction(
            operation=operation,
            target_entity=target,
            action_name=action_name,
            confidence=confidence,
        )

    @staticmethod
    def _match_operation(text: str) -> Optional[Operation]:
        if not text:
            return None
        for operation, keywords in OPERATION_KEYWORDS:
            if any(keyword in text for keyword in keywords):
                return operation
        return None

    @staticmethod
    def _extract_target_entity(inputs: dict, action_name: str) -> tuple[str, Confidence]:
        """Find the target entity, most direct evidence first.

        Tiers: entityName parameter (High), entityLogicalName parameter
        (Medium), table path segment (Low), action name suffix (Low).
        An empty string means no target could be determined.
        """
        parameters = inputs.get("parameters") or {}

        entity_name = parameters.get("entityName")
        if entity_name and isinstance(entity_name, str):
            return entity_name.strip().lower(), Confidence.HIGH

        logical_name = parameters.get("entityLogicalName")
        if logical_name and isinstance(logical_name, str):
            return logical_name.strip().lower(), Confidence.MEDIUM

        path = inputs.get("path")
        if isinstance(path, str):
            match = _PATH_ENTITY_PATTERN.search(path)
            if match:
                return match.group(1).lower(), Confidence.LOW

        tokens = [t for t in re.split(r"[_\s]+", action_name.lower()) if t]
        if len(tokens) > 1 and tokens[-1] not in GENERIC_NAME_SUFFIXES and tokens[-1].isidentifier():
            return tokens[-1], Confidence.LOW

        return "", Confidence.LOW


def parse_flow_definition(clientdata: Union[str, dict, None]) -> FlowDefinition:
    """Convenience wrapper around FlowDefinitionParser.parse()."""
    return FlowDefinitionParser.parse(clientdata)
