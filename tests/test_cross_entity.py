"""
Tests for cross-entity link mapping and the entity graph.
"""

from tracery.analysis.cross_entity_mapper import CrossEntityMapper
from tracery.model.graph_builder import EntityGraph
from tracery.model.schemas import (
    AutomationType, Confidence, CrossEntityLink, Operation, TriggerEvent
)


def link(source: str, target: str, name: str = "auto") -> CrossEntityLink:
    return CrossEntityLink(
        source_entity=source,
        source_entity_display_name=source.title(),
        target_entity=target,
        target_entity_display_name=target.title(),
        automation_type=AutomationType.FLOW,
        automation_name=name,
        automation_id=f"{source}-{target}-{name}",
        operation=Operation.UPDATE,
        description="",
        is_asynchronous=True,
    )


class TestFlowLinks:
    """Dataverse actions inside flows."""

    def test_flow_action_on_other_entity(self, make_flow, make_blueprint) -> None:
        flow = make_flow(
            name="Sync contacts",
            trigger_event=TriggerEvent.UPDATE,
            dataverse_actions=((Operation.UPDATE, "contact"),),
        )
        blueprints = [
            make_blueprint("account", "Account", flows=[flow]),
            make_blueprint("contact", "Contact"),
        ]
        links = CrossEntityMapper().map(blueprints)

        assert len(links) == 1
        found = links[0]
        assert (found.source_entity, found.target_entity) == ("account", "contact")
        assert found.target_entity_display_name == "Contact"
        assert found.automation_type == AutomationType.FLOW
        assert found.is_asynchronous is True
        assert found.confidence == Confidence.HIGH
        assert found.name_based is False
        assert found.description == 'Flow "Sync contacts" updates records in contact when account is updated'

    def test_no_self_links(self, make_flow, make_blueprint) -> None:
        flow = make_flow(dataverse_actions=((Operation.UPDATE, "account"), (Operation.CREATE, "Account")))
        assert CrossEntityMapper().map([make_blueprint("account", flows=[flow])]) == []

    def test_empty_targets_are_skipped(self, make_flow, make_blueprint) -> None:
        flow = make_flow(dataverse_actions=((Operation.GET, ""),))
        assert CrossEntityMapper().map([make_blueprint("account", flows=[flow])]) == []

    def test_entity_set_names_resolve(self, make_flow, make_blueprint) -> None:
        """Web API collection names map back to logical names."""
        flow = make_flow(dataverse_actions=((Operation.CREATE, "contacts"),))
        blueprints = [
            make_blueprint("account", flows=[flow]),
            make_blueprint("contact", "Contact", entity_set_name="contacts"),
        ]
        links = CrossEntityMapper().map(blueprints)

        assert [(l.target_entity, l.operation) for l in links] == [("contact", Operation.CREATE)]

    def test_unknown_target_keeps_its_name(self, make_flow, make_blueprint) -> None:
        flow = make_flow(dataverse_actions=((Operation.DELETE, "new_invoice"),))
        found = CrossEntityMapper().map([make_blueprint("account", flows=[flow])])[0]

        assert found.target_entity == "new_invoice"
        assert found.target_entity_display_name == "new_invoice"


class TestPluginLinks:
    """Name-based hints from plugin names and descriptions."""

    def test_whole_word_entity_name(self, make_plugin, make_blueprint) -> None:
        plugin = make_plugin(name="Create contact from account", mode=1)
        blueprints = [make_blueprint("account", plugins=[plugin]), make_blueprint("contact")]
        found = CrossEntityMapper().map(blueprints)[0]

        assert found.target_entity == "contact"
        assert found.automation_type == AutomationType.PLUGIN
        assert found.operation == Operation.CREATE
        assert found.confidence == Confidence.LOW
        assert found.name_based is True
        assert found.is_asynchronous is True

    def test_partial_words_do_not_match(self, make_plugin, make_blueprint) -> None:
        plugin = make_plugin(name="Recalculate contactpoints")
        blueprints = [make_blueprint("account", plugins=[plugin]), make_blueprint("contact")]
        assert CrossEntityMapper().map(blueprints) == []

    def test_description_is_searched(self, make_plugin, make_blueprint) -> None:
        plugin = make_plugin(name="Rollup", description="Writes totals to the opportunity")
        blueprints = [make_blueprint("account", plugins=[plugin]), make_blueprint("opportunity")]
        found = CrossEntityMapper().map(blueprints)[0]

        assert found.target_entity == "opportunity"
        assert found.operation == Operation.UPDATE

    def test_guess_operation(self) -> None:
        """First matching keyword group wins; Update is the default."""
        assert CrossEntityMapper.guess_operation("Insert audit row") == Operation.CREATE
        assert CrossEntityMapper.guess_operation("Remove stale rows") == Operation.DELETE
        assert CrossEntityMapper.guess_operation("Rollup") == Operation.UPDATE


class TestLinkOrdering:
    def test_links_sorted_by_source_then_target(self, make_flow, make_blueprint) -> None:
        blueprints = [
            make_blueprint("lead", flows=[make_flow(entity="lead", dataverse_actions=((Operation.CREATE, "contact"),))]),
            make_blueprint("account", flows=[make_flow(dataverse_actions=(
                (Operation.UPDATE, "task"), (Operation.UPDATE, "contact"),
            ))]),
        ]
        pairs = [(l.source_entity, l.target_entity) for l in CrossEntityMapper().map(blueprints)]
        assert pairs == [("account", "contact"), ("account", "task"), ("lead", "contact")]


class TestEntityGraph:
    """Traversal queries over links."""

    def test_outgoing_and_incoming(self) -> None:
        graph = CrossEntityMapper.build_graph([link("account", "contact"), link("lead", "contact")])

        assert [l.source_entity for l in graph.incoming("Contact")] == ["account", "lead"]
        assert [l.target_entity for l in graph.outgoing("account")] == ["contact"]
        assert graph.outgoing("missing") == []
        assert graph.node_count == 3
        assert graph.edge_count == 2

    def test_parallel_links_are_kept(self) -> None:
        graph = CrossEntityMapper.build_graph([link("account", "contact", "a"), link("account", "contact", "b")])
        assert graph.edge_count == 2
        assert list(graph.get_successors("account")) == ["contact"]

    def test_has_path(self) -> None:
        graph = CrossEntityMapper.build_graph([link("account", "contact"), link("contact", "task")])

        assert graph.has_path("account", "task")
        assert not graph.has_path("task", "account")
        assert not graph.has_path("account", "nowhere")

    def test_find_cycles(self) -> None:
        graph = CrossEntityMapper.build_graph([
            link("contact", "account"), link("account", "contact"), link("task", "lead"),
        ])
        assert graph.find_cycles() == [["account", "contact"]]

    def test_hub_entities(self) -> None:
        graph = CrossEntityMapper.build_graph([
            link("account", "contact"), link("account", "task"), link("lead", "account"),
        ])
        assert graph.hub_entities(top=2) == [("account", 3), ("contact", 1)]

    def test_to_dict(self) -> None:
        graph = EntityGraph()
        graph.add_entity("account", "Account")
        graph.add_link(link("account", "contact"))
        data = graph.to_dict()

        assert data["nodes"] == [
            {"entity": "account", "display_name": "Account"},
            {"entity": "contact", "display_name": "Contact"},
        ]
        assert data["edges"] == [
            {"source": "account", "target": "contact", "automation_type": "Flow", "operation": "Update"},
        ]
        assert data["cycles"] == []
