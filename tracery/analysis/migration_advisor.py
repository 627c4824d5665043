"""
Migration Advisor
=================

Assesses how hard it is to move a legacy (classic) workflow to a cloud
flow.

Complexity Rules (first match wins):
- Critical: custom workflow activities or deprecated features
- High: child workflows, wait conditions, or a real-time (synchronous)
  workflow
- Medium: both conditional and stage features among more than 3 features
- Low: everything else

Design Decisions:
-----------------
1. Feature detection is a fixed, ordered list of markup substring checks;
   the order is the order features appear in the recommendation
2. A workflow with no detected feature gets a single "Basic Operations"
   feature
3. Real-time workflows get a categorically different advisory: cloud flows
   are always asynchronous
"""

from ..model.schemas import Complexity, MigrationFeature, MigrationRecommendation
from ..model.artifacts import ClassicWorkflow
from ..parsers.workflow_markup import WorkflowMarkupParser


DOCUMENTATION_LINK = "https://learn.microsoft.com/en-us/power-automate/migrate-from-classic-workflows"

# (feature, markers, recommendation, migration path)
FEATURE_CHECKS = [
    ("Field Updates", ["<UpdateEntity", "SetState"],
     "Use Update Record action in Power Automate", "Direct mapping - straightforward"),
    ("Wait Conditions", ["<Wait", "WaitCondition"],
     "Use Delay Until or Delay actions", "Medium complexity - requires date/time logic"),
    ("Child Workflows", ["<CallChildWorkflow"],
     "Use nested flows or child flows", "Complex - requires restructuring"),
    ("Custom Workflow Activities", ["CustomAssemblyActivity", "CustomWorkflowActivity"],
     "Requires custom connector or plugin conversion", "Critical - may need code rewrite"),
    ("Send Email", ["SendEmail", "<Email"],
     "Use Send Email action", "Direct mapping - straightforward"),
    ("Create Record", ["<CreateEntity"],
     "Use Create Record action", "Direct mapping - straightforward"),
    ("Conditional Logic", ["<Condition", "ConditionalBranch"],
     "Use Condition actions", "Medium complexity - requires expression mapping"),
    ("Assign Record", ["<Assign", "AssignEntity"],
     "Use Assign Record or Update Record (owner field)", "Direct mapping - straightforward"),
    ("Status Changes", ["SetState", "SetStatus"],
     "Use Change Status action", "Direct mapping - straightforward"),
    ("Process/Stage Changes", ["SetProcess", "SetStage"],
     "Use Change Stage or Switch Process actions", "Medium complexity - BPF logic"),
    ("Deprecated Features", ["Deprecated", "Obsolete"],
     "Find alternative approach in Power Automate", "Critical - no direct equivalent"),
]

BASIC_FEATURE = MigrationFeature(
    feature="Basic Operations",
    recommendation="Standard Power Automate actions",
    migration_path="Low complexity",
)

EFFORT_BY_COMPLEXITY = {
    Complexity.CRITICAL: "1+ weeks",
    Complexity.HIGH: "1-2 days",
    Complexity.MEDIUM: "4-8 hours",
    Complexity.LOW: "1-2 hours",
}

REALTIME_ADVISORY = (
    "Advisory: Real-time workflows cannot be fully migrated to Power Automate cloud flows "
    "due to their synchronous nature. Consider using Dataverse plugins for synchronous "
    "business logic, or migrate to Power Automate with the understanding that flows are "
    "asynchronous and cannot block user operations."
)
BACKGROUND_ADVISORY = (
    "Advisory: This async workflow can be migrated to Power Automate cloud flows. Classic "
    "workflows are deprecated, and migration is recommended to ensure continued support "
    "and access to modern features."
)


class MigrationAdvisor:
    """Produces migration recommendations for classic workflows.

    Usage:
        advisor = MigrationAdvisor()
        recommendation = advisor.analyze(workflow)
        print(recommendation.complexity.value, recommendation.effort)
    """

    def analyze(self, workflow: ClassicWorkflow) -> MigrationRecommendation:
        """Analyze one classic workflow.

        Args:
            workflow: ClassicWorkflow with its raw markup

        Returns:
            MigrationRecommendation
        """
        features = self.detect_features(workflow.xaml)
        complexity = self.calculate_complexity(features, workflow)

        return MigrationRecommendation(
            complexity=complexity,
            effort=EFFORT_BY_COMPLEXITY[complexity],
            approach=self._approach(workflow, features),
            challenges=self._challenges(workflow, features),
            features=features,
            documentation_link=DOCUMENTATION_LINK,
            advisory=REALTIME_ADVISORY if workflow.is_synchronous else BACKGROUND_ADVISORY,
        )

    @staticmethod
    def detect_features(xaml: str) -> list[MigrationFeature]:
        """Run the ordered feature checks over workflow markup."""
        features = [
            MigrationFeature(feature=name, recommendation=recommendation, migration_path=path)
            for name, markers, recommendation, path in FEATURE_CHECKS
            if WorkflowMarkupParser.contains_any(xaml, markers)
        ]
        return features or [BASIC_FEATURE]

    @staticmethod
    def calculate_complexity(features: list[MigrationFeature], workflow: ClassicWorkflow) -> Complexity:
        names = [f.feature for f in features]

        if any("Custom" in n or "Deprecated" in n for n in names):
            return Complexity.CRITICAL

        if any("Child Workflows" in n or "Wait" in n for n in names):
            return Complexity.HIGH

        if workflow.is_synchronous:
            return Complexity.HIGH

        branching = [n for n in names if "Conditional" in n or "Stage" in n]
        if len(branching) >= 2 and len(features) > 3:
            return Complexity.MEDIUM

        return Complexity.LOW

    @staticmethod
    def _approach(workflow: ClassicWorkflow, features: list[MigrationFeature]) -> str:
        steps = ["1. Create a new cloud flow in Power Automate"]

        triggers = [
            label for flag, label in (
                (workflow.trigger_on_create, "added"),
                (workflow.trigger_on_update, "modified"),
                (workflow.trigger_on_delete, "deleted"),
            )
            if flag
        ]
        if triggers:
            steps.append(f"2. Set trigger: When a row is {', '.join(triggers)}")
        elif workflow.on_demand:
            steps.append("2. Set trigger: When a flow is run from the command bar")

        steps.append("3. Add actions for each workflow step:")
        steps.extend(f"   - {f.feature}: {f.recommendation}" for f in features)

        steps.extend([
            "4. Test the flow thoroughly in development environment",
            "5. Deactivate the classic workflow",
            "6. Activate the new cloud flow",
            "7. Monitor for any issues and adjust as needed",
        ])
        return "\n".join(steps)

    @staticmethod
    def _challenges(workflow: ClassicWorkflow, features: list[MigrationFeature]) -> list[str]:
        names = [f.feature for f in features]
        challenges = []

        if any("Custom" in n for n in names):
            challenges.append(
                "Custom workflow activities require code migration to custom connectors or plugins"
            )
        if any("Wait" in n for n in names):
            challenges.append(
                "Wait conditions may behave differently in Power Automate "
                "(timezone handling, duration limits)"
            )
        if any("Child" in n for n in names):
            challenges.append("Child workflow logic needs to be reorganized as nested or child flows")
        if any("Stage" in n for n in names):
            challenges.append("Business process flow stage changes require careful testing")

        process = WorkflowMarkupParser.parse(workflow.xaml)
        if process.cross_entity_flow:
            challenges.append(
                f"Workflow stages span multiple tables ({', '.join(process.entities)}); "
                "each needs its own trigger or lookup in the cloud flow"
            )

        if not challenges:
            challenges.append("Standard workflow - migration should be straightforward")

        return challenges
