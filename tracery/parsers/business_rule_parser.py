"""
Business Rule Parser
====================

Extracts conditions and actions from business rule XAML.

The parsing is regex based: conditions are <condition attribute operator>
elements with a nested <value>, actions are <action actiontype> elements
with named <parameter> children.
"""

import re
from typing import Optional

from ..model.schemas import BusinessRuleDefinition, RuleCondition, RuleAction


OPERATOR_NAMES = {
    "eq": "equals",
    "ne": "not equals",
    "gt": "greater than",
    "ge": "greater than or equals",
    "lt": "less than",
    "le": "less than or equals",
    "contains": "contains",
    "not-contains": "does not contain",
    "begins-with": "begins with",
    "ends-with": "ends with",
}

ACTION_TYPES = {
    "show": "ShowField",
    "hide": "HideField",
    "setvalue": "SetValue",
    "setrequired": "SetRequired",
    "lock": "LockField",
    "unlock": "UnlockField",
    "showerror": "ShowError",
}

CLIENT_ACTIONS = {"ShowField", "HideField", "LockField", "UnlockField"}
SERVER_ACTIONS = {"SetValue", "SetRequired", "ShowError"}

_CONDITION = re.compile(
    r'<condition[^>]*attribute="([^"]*)"[^>]*operator="([^"]*)"[^>]*>[\s\S]*?<value[^>]*>([^<]*)</value>',
    re.IGNORECASE
)
_ACTION = re.compile(r'<action[^>]*actiontype="([^"]*)"[^>]*>[\s\S]*?</action>', re.IGNORECASE)


class BusinessRuleParser:
    """Parser for business rule XAML."""

    @classmethod
    def parse(cls, xaml: Optional[str]) -> BusinessRuleDefinition:
        if not xaml or not isinstance(xaml, str) or not xaml.strip():
            return BusinessRuleDefinition()

        conditions = cls._parse_conditions(xaml)
        actions = cls._parse_actions(xaml)

        return BusinessRuleDefinition(
            conditions=conditions,
            actions=actions,
            execution_context=cls._execution_context(actions),
            condition_logic=cls._condition_logic(conditions),
        )

    @staticmethod
    def _parse_conditions(xaml: str) -> list[RuleCondition]:
        conditions = []
        for match in _CONDITION.finditer(xaml):
            field_name, operator, value = match.groups()
            # The nearest enclosing filter decides the logic operator
            preceding = xaml[max(0, match.start() - 200):match.start()]
            conditions.append(RuleCondition(
                field=field_name or "unknown",
                operator=OPERATOR_NAMES.get(operator or "eq", operator),
                value=value or "",
                logic_operator="OR" if "<or>" in preceding else "AND",
            ))
        return conditions

    @classmethod
    def _parse_actions(cls, xaml: str) -> list[RuleAction]:
        actions = []
        for match in _ACTION.finditer(xaml):
            block = match.group(0)
            actions.append(RuleAction(
                action_type=ACTION_TYPES.get(match.group(1).lower(), "SetValue"),
                field=cls._parameter(block, "field") or "unknown",
                value=cls._parameter(block, "value"),
                message=cls._parameter(block, "message"),
            ))
        return actions

    @staticmethod
    def _parameter(block: str, name: str) -> Optional[str]:
        match = re.search(
            rf'<parameter[^>]*name="{re.escape(name)}"[^>]*>([^<]*)</parameter>',
            block,
            re.IGNORECASE
        )
        return match.group(1) if match else None

    @staticmethod
    def _execution_context(actions: list[RuleAction]) -> str:
        client = any(a.action_type in CLIENT_ACTIONS for a in actions)
        server = any(a.action_type in SERVER_ACTIONS for a in actions)
        if client and server:
            return "Both"
        if server:
            return "Server"
        return "Client"

    @staticmethod
    def _condition_logic(conditions: list[RuleCondition]) -> str:
        """Render conditions as a readable IF expression."""
        if not conditions:
            return "No conditions defined"

        parts = []
        for i, c in enumerate(conditions):
            clause = f"{c.field} {c.operator} '{c.value}'"
            parts.append(clause if i == 0 else f"{c.logic_operator} {clause}")
        return "IF " + " ".join(parts)
