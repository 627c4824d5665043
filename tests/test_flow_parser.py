"""
Tests for the cloud flow definition parser.
"""

import json

from tracery.model.schemas import Confidence, Operation, ScopeType, TriggerEvent, TriggerType
from tracery.parsers.flow_parser import FlowDefinitionParser, parse_flow_definition


def _clientdata(trigger=None, actions=None, **properties) -> str:
    definition = {}
    if trigger is not None:
        definition["triggers"] = {"trigger": trigger}
    if actions is not None:
        definition["actions"] = actions
    return json.dumps({"properties": dict(definition=definition, **properties)})


DATAVERSE_HOST = {"apiId": "/providers/Microsoft.PowerApps/apis/shared_commondataserviceforapps"}


class TestMalformedInput:
    """Bad input never raises."""

    def test_empty_input_returns_default(self) -> None:
        """None and empty strings produce an untouched default definition."""
        for value in (None, ""):
            definition = FlowDefinitionParser.parse(value)
            assert definition.trigger_type == TriggerType.OTHER
            assert definition.trigger_event == TriggerEvent.UNKNOWN
            assert definition.parse_error is None

    def test_invalid_json_sets_parse_error(self) -> None:
        """Unparseable JSON is reported on the definition."""
        definition = FlowDefinitionParser.parse("{not json")
        assert definition.parse_error.startswith("Failed to parse flow definition")
        assert definition.actions_count == 0

    def test_non_object_json_sets_parse_error(self) -> None:
        """A JSON array is not a flow definition."""
        definition = FlowDefinitionParser.parse("[1, 2]")
        assert definition.parse_error is not None

    def test_wrapper_function_delegates(self) -> None:
        """parse_flow_definition() is the same parser."""
        definition = parse_flow_definition(_clientdata(trigger={"type": "Recurrence"}))
        assert definition.trigger_type == TriggerType.SCHEDULED


class TestTriggerClassification:
    """The first trigger decides type and event."""

    def test_dataverse_update_from_type(self) -> None:
        """Trigger type names carry the event."""
        definition = FlowDefinitionParser.parse(_clientdata(trigger={"type": "CommonDataServiceUpdateTrigger"}))
        assert definition.trigger_type == TriggerType.DATAVERSE
        assert definition.trigger_event == TriggerEvent.UPDATE

    def test_dataverse_create_or_update_from_type(self) -> None:
        """A type naming both create and update maps to CreateOrUpdate."""
        definition = FlowDefinitionParser.parse(
            _clientdata(trigger={"type": "CommonDataServiceCreateOrUpdateTrigger"})
        )
        assert definition.trigger_event == TriggerEvent.CREATE_OR_UPDATE

    def test_webhook_trigger_uses_message_code(self) -> None:
        """Webhook triggers carry the event as subscriptionRequest/message."""
        for code, expected in ((1, TriggerEvent.CREATE), (2, TriggerEvent.DELETE),
                               (3, TriggerEvent.UPDATE), (4, TriggerEvent.CREATE_OR_UPDATE)):
            trigger = {
                "type": "OpenApiConnectionWebhook",
                "inputs": {"host": DATAVERSE_HOST, "parameters": {"subscriptionRequest/message": code}},
            }
            definition = FlowDefinitionParser.parse(_clientdata(trigger=trigger))
            assert definition.trigger_type == TriggerType.DATAVERSE
            assert definition.trigger_event == expected

    def test_filter_expression_is_kept(self) -> None:
        """Trigger conditions come from the filter expression."""
        trigger = {
            "type": "OpenApiConnectionWebhook",
            "inputs": {
                "host": DATAVERSE_HOST,
                "parameters": {
                    "subscriptionRequest/message": 3,
                    "subscriptionRequest/filterexpression": "statecode eq 0",
                },
            },
        }
        definition = FlowDefinitionParser.parse(_clientdata(trigger=trigger))
        assert definition.trigger_conditions == "statecode eq 0"

    def test_manual_and_scheduled_triggers(self) -> None:
        """Request and Recurrence triggers are not Dataverse triggers."""
        manual = FlowDefinitionParser.parse(_clientdata(trigger={"type": "Request"}))
        scheduled = FlowDefinitionParser.parse(_clientdata(trigger={"type": "Recurrence"}))

        assert (manual.trigger_type, manual.trigger_event) == (TriggerType.MANUAL, TriggerEvent.MANUAL)
        assert (scheduled.trigger_type, scheduled.trigger_event) == (
            TriggerType.SCHEDULED, TriggerEvent.SCHEDULED
        )

    def test_missing_trigger_is_other(self) -> None:
        """A definition with no triggers is Other/Unknown."""
        definition = FlowDefinitionParser.parse(_clientdata(actions={}))
        assert definition.trigger_type == TriggerType.OTHER
        assert definition.trigger_event == TriggerEvent.UNKNOWN


class TestScope:
    """Run-as setting mapping."""

    def test_run_as_values(self) -> None:
        """0/1/2 map to User/BusinessUnit/Organization."""
        assert FlowDefinitionParser.parse(_clientdata(runAs="0")).scope_type == ScopeType.USER
        assert FlowDefinitionParser.parse(_clientdata(runAs=1)).scope_type == ScopeType.BUSINESS_UNIT
        assert FlowDefinitionParser.parse(_clientdata(runAs="2")).scope_type == ScopeType.ORGANIZATION

    def test_missing_run_as_is_unknown(self) -> None:
        """No run-as setting means Unknown scope."""
        assert FlowDefinitionParser.parse(_clientdata()).scope_type == ScopeType.UNKNOWN


class TestActionWalk:
    """Recursive action traversal."""

    def test_nested_branches_are_counted(self) -> None:
        """Scope bodies, else branches, switch cases and defaults are all visited."""
        actions = {
            "Scope": {
                "type": "Scope",
                "actions": {"Compose_1": {"type": "Compose"}},
            },
            "Condition": {
                "type": "If",
                "actions": {"Compose_2": {"type": "Compose"}},
                "else": {"actions": {"Compose_3": {"type": "Compose"}}},
            },
            "Switch": {
                "type": "Switch",
                "cases": {"Case": {"actions": {"Compose_4": {"type": "Compose"}}}},
                "default": {"actions": {"Compose_5": {"type": "Compose"}}},
            },
        }
        definition = FlowDefinitionParser.parse(_clientdata(actions=actions))
        assert definition.actions_count == 8

    def test_connection_references_are_unique(self) -> None:
        """Each connection name is listed once, in order of first use."""
        host = {"connectionName": "shared_office365"}
        actions = {
            "Send_an_email": {"type": "OpenApiConnection", "inputs": {"host": host}},
            "Send_another_email": {"type": "OpenApiConnection", "inputs": {"host": host}},
        }
        definition = FlowDefinitionParser.parse(_clientdata(actions=actions))
        assert definition.connection_references == ["shared_office365"]


class TestExternalCalls:
    """HTTP-shaped actions become ExternalCalls."""

    def test_http_with_uri_and_method_is_high(self) -> None:
        """Explicit URI plus method is the strongest evidence."""
        actions = {"Call_api": {"type": "Http", "inputs": {"method": "POST", "uri": "https://API.Example.com/x"}}}
        definition = FlowDefinitionParser.parse(_clientdata(actions=actions))

        assert definition.has_external_calls
        call = definition.external_calls[0]
        assert call.domain == "api.example.com"
        assert call.method == "POST"
        assert call.action_name == "Call_api"
        assert call.confidence == Confidence.HIGH

    def test_http_without_method_is_low(self) -> None:
        """A URI alone is weaker evidence."""
        actions = {"Call_api": {"type": "Http", "inputs": {"uri": "https://api.example.com/x"}}}
        call = FlowDefinitionParser.parse(_clientdata(actions=actions)).external_calls[0]
        assert call.confidence == Confidence.LOW
        assert call.method is None

    def test_connector_path_is_medium_with_unknown_domain(self) -> None:
        """Connector paths are relative, so their domain cannot be known."""
        actions = {"List_rows": {"type": "OpenApiConnection", "inputs": {"path": "/v2/items"}}}
        call = FlowDefinitionParser.parse(_clientdata(actions=actions)).external_calls[0]
        assert call.confidence == Confidence.MEDIUM
        assert call.domain == "unknown"

    def test_other_action_types_are_ignored(self) -> None:
        """Only Http and OpenApiConnection actions can call out."""
        actions = {"Compose": {"type": "Compose", "inputs": {"uri": "https://api.example.com"}}}
        assert not FlowDefinitionParser.parse(_clientdata(actions=actions)).has_external_calls


class TestDataverseActions:
    """Table operations and their target entity."""

    @staticmethod
    def _single_action(name: str, action: dict):
        definition = FlowDefinitionParser.parse(_clientdata(actions={name: action}))
        assert len(definition.dataverse_actions) == 1
        return definition.dataverse_actions[0]

    def test_entity_name_parameter_is_high(self) -> None:
        """entityName is the most direct target evidence."""
        action = self._single_action("Add_a_new_row", {
            "type": "OpenApiConnection",
            "inputs": {
                "host": {"operationId": "CreateRecord"},
                "parameters": {"entityName": "Contacts"},
            },
        })
        assert action.operation == Operation.CREATE
        assert action.target_entity == "contacts"
        assert action.confidence == Confidence.HIGH

    def test_entity_logical_name_parameter_is_medium(self) -> None:
        """entityLogicalName is the second tier."""
        action = self._single_action("Modify_row", {
            "type": "OpenApiConnection",
            "inputs": {
                "host": {"operationId": "UpdateRecord"},
                "parameters": {"entityLogicalName": "invoice"},
            },
        })
        assert action.operation == Operation.UPDATE
        assert (action.target_entity, action.confidence) == ("invoice", Confidence.MEDIUM)

    def test_table_path_segment_is_low(self) -> None:
        """The table named in a connector path is a low-confidence target."""
        action = self._single_action("Remove_row", {
            "type": "ApiConnection",
            "inputs": {
                "host": {"operationId": "DeleteItem"},
                "path": "/v2/datasets/default/tables/@{encodeURIComponent(encodeURIComponent('leads'))}/items",
            },
        })
        assert action.operation == Operation.DELETE
        assert (action.target_entity, action.confidence) == ("leads", Confidence.LOW)

    def test_action_name_suffix_is_low(self) -> None:
        """The last word of the action name is the last resort."""
        action = self._single_action("Update_invoice", {"type": "OpenApiConnection", "inputs": {}})
        assert action.operation == Operation.UPDATE
        assert (action.target_entity, action.confidence) == ("invoice", Confidence.LOW)

    def test_generic_suffix_yields_empty_target(self) -> None:
        """Generic words are not entity names."""
        action = self._single_action("Get_items", {"type": "OpenApiConnection", "inputs": {}})
        assert action.operation == Operation.GET
        assert action.target_entity == ""

    def test_control_actions_are_not_data_actions(self) -> None:
        """Compose, variables and HTTP never touch table data."""
        actions = {
            "Create_summary": {"type": "Compose"},
            "Update_counter": {"type": "SetVariable"},
            "Delete_remote": {"type": "Http", "inputs": {"method": "DELETE", "uri": "https://x.example.com"}},
        }
        definition = FlowDefinitionParser.parse(_clientdata(actions=actions))
        assert definition.dataverse_actions == []
