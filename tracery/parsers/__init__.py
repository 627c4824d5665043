"""
tracery Parsers Module
======================

Definition parsers that turn one raw artifact definition into a typed,
confidence-tagged description. Parsers never raise on bad input.

Components:
- flow_parser.py: Cloud flow clientdata JSON
- script_parser.py: JavaScript web resources
- workflow_markup.py: Legacy workflow / business process flow XAML
- business_rule_parser.py: Business rule XAML
"""

from .flow_parser import FlowDefinitionParser, parse_flow_definition
from .script_parser import ScriptParser, parse_script
from .workflow_markup import WorkflowMarkupParser
from .business_rule_parser import BusinessRuleParser
