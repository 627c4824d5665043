"""
Shared pytest configuration and fixtures for tracery tests.

Factories build artifact records with sensible defaults so each test only
spells out the fields it cares about.
"""

import base64
import json
from itertools import count
from typing import Any, Callable

import pytest

from tracery.config import set_config
from tracery.model.artifacts import (
    BusinessRule, ClassicWorkflow, EntityBlueprint, EntityMetadata, Flow, PluginStep, WebResource
)
from tracery.model.schemas import (
    Confidence, DataverseAction, ExternalCall, FlowDefinition, TriggerEvent, TriggerType
)
from tracery.parsers.common import extract_domain
from tracery.parsers.script_parser import ScriptParser


_ids = count(1)


def _next_id(prefix: str) -> str:
    return f"{prefix}-{next(_ids)}"


@pytest.fixture(autouse=True)
def reset_global_config() -> Any:
    """Keep the module-level default configuration isolated per test."""
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def make_plugin() -> Callable[..., PluginStep]:
    def factory(**overrides: Any) -> PluginStep:
        values = dict(
            id=_next_id("plugin"),
            name=None,
            type_name="Contoso.Plugins.AccountPlugin",
            entity="account",
            message="Update",
            stage=20,
            rank=1,
            mode=0,
        )
        values.update(overrides)
        return PluginStep(**values)

    return factory


@pytest.fixture
def make_flow() -> Callable[..., Flow]:
    def factory(
        urls: tuple = (),
        trigger_event: TriggerEvent = TriggerEvent.UPDATE,
        dataverse_actions: tuple = (),
        **overrides: Any
    ) -> Flow:
        definition = FlowDefinition(
            trigger_type=TriggerType.DATAVERSE,
            trigger_event=trigger_event,
            external_calls=[
                ExternalCall(url=url, domain=extract_domain(url), method="POST", confidence=Confidence.HIGH)
                for url in urls
            ],
            dataverse_actions=[
                DataverseAction(operation=op, target_entity=target, action_name=f"{op.value}_{target}",
                                confidence=Confidence.HIGH)
                for op, target in dataverse_actions
            ],
        )
        values = dict(
            id=_next_id("flow"),
            name="Account sync",
            entity="account",
            state="Active",
            scope=4,
            definition=definition,
        )
        values.update(overrides)
        return Flow(**values)

    return factory


@pytest.fixture
def make_rule() -> Callable[..., BusinessRule]:
    def factory(**overrides: Any) -> BusinessRule:
        values = dict(id=_next_id("rule"), name="Require phone", entity="account", state="Active")
        values.update(overrides)
        return BusinessRule(**values)

    return factory


@pytest.fixture
def make_workflow() -> Callable[..., ClassicWorkflow]:
    def factory(xaml: str = "", **overrides: Any) -> ClassicWorkflow:
        values = dict(id=_next_id("wf"), name="Legacy workflow", entity="account", mode=0, xaml=xaml)
        values.update(overrides)
        return ClassicWorkflow(**values)

    return factory


@pytest.fixture
def make_script() -> Callable[..., WebResource]:
    def factory(content: str, **overrides: Any) -> WebResource:
        values = dict(
            id=_next_id("wr"),
            name="new_/scripts/form.js",
            content=content,
            analysis=ScriptParser.parse(content),
        )
        values.update(overrides)
        return WebResource(**values)

    return factory


@pytest.fixture
def make_blueprint() -> Callable[..., EntityBlueprint]:
    def factory(logical_name: str, display_name: str = None, entity_set_name: str = None,
                **artifacts: Any) -> EntityBlueprint:
        return EntityBlueprint(
            entity=EntityMetadata(logical_name, display_name, entity_set_name),
            **artifacts
        )

    return factory


def _clientdata(trigger: dict, actions: dict) -> str:
    return json.dumps({
        "properties": {
            "definition": {
                "triggers": {"When_a_row_is_modified": trigger},
                "actions": actions,
            },
        },
    })


@pytest.fixture
def sample_snapshot() -> dict:
    """A small environment: account automation that writes contacts and calls out."""
    script = "fetch('https://api.stripe.com/v1/charges', { method: 'POST' });"

    return {
        "environment": "contoso-dev",
        "entities": [
            {"logical_name": "account", "display_name": "Account", "entity_set_name": "accounts"},
            {"LogicalName": "contact", "DisplayName": {"UserLocalizedLabel": {"Label": "Contact"}},
             "EntitySetName": "contacts"},
        ],
        "plugins": [
            {
                "sdkmessageprocessingstepid": "step-1",
                "name": "Validate account number",
                "plugintypeid": {"typename": "Contoso.Plugins.ValidateAccount"},
                "sdkmessagefilterid": {"primaryobjecttypecode": "account"},
                "sdkmessageid": {"name": "Update"},
                "stage": 20,
                "rank": 1,
                "mode": 0,
            },
            {
                "id": "step-2",
                "name": "Sync contact phone",
                "type_name": "Contoso.Plugins.AddressSync",
                "entity": "account",
                "message": "Update",
                "stage": 40,
                "rank": 1,
                "mode": 1,
            },
            "not a record",
        ],
        "flows": [
            {
                "workflowid": "flow-1",
                "name": "Notify billing",
                "primaryentity": "account",
                "statecode": 1,
                "scope": 4,
                "clientdata": _clientdata(
                    {
                        "type": "OpenApiConnectionWebhook",
                        "inputs": {
                            "host": {"apiId": "/providers/Microsoft.PowerApps/apis/shared_commondataserviceforapps"},
                            "parameters": {"subscriptionRequest/message": 3},
                        },
                    },
                    {
                        "Post_to_billing": {
                            "type": "Http",
                            "inputs": {"method": "POST", "uri": "http://billing.example.org/hook"},
                        },
                        "Update_primary_contact": {
                            "type": "OpenApiConnection",
                            "inputs": {
                                "host": {
                                    "apiId": "/providers/Microsoft.PowerApps/apis/shared_commondataserviceforapps",
                                    "operationId": "UpdateRecord",
                                },
                                "parameters": {"entityName": "contacts"},
                            },
                        },
                    },
                ),
            },
        ],
        "business_rules": [
            {"workflowid": "rule-1", "name": "Require phone", "primaryentity": "account", "statecode": 1},
        ],
        "classic_workflows": [
            {
                "workflowid": "wf-1",
                "name": "Escalate overdue",
                "primaryentity": "account",
                "mode": 0,
                "triggeronupdate": True,
                "statecode": 1,
                "xaml": "<Activity><mxswa:CustomWorkflowActivity /></Activity>",
            },
        ],
        "web_resources": [
            {
                "webresourceid": "wr-1",
                "name": "new_/scripts/account.js",
                "webresourcetype": 3,
                "content": base64.b64encode(script.encode("utf-8")).decode("ascii"),
            },
        ],
        "business_process_flows": [
            {
                "workflowid": "bpf-1",
                "name": "Lead to Opportunity",
                "primaryentity": "lead",
                "statecode": 1,
                "xaml": (
                    '<mxswa:Stage EntityName="lead" StageName="Qualify" StageId="s1" />'
                    '<mxswa:Stage EntityName="opportunity" StageName="Develop" StageId="s2" />'
                ),
            },
        ],
    }
