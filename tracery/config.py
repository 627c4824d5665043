"""
tracery Configuration Module
============================

Centralized configuration management for the tracery framework.
Supports environment variables for deployment-specific values.

Design Decision:
- Configuration is a dataclass tree that can be passed through the pipeline
- Risk thresholds and allow-lists are data, so environments can tune them
  without touching the analyzers
- Output paths are configurable for flexibility in different environments
"""

import os
from dataclasses import dataclass, field, asdict
from typing import Optional


@dataclass
class AnalysisConfig:
    """Thresholds used by the pipeline risk analyzer.

    Each threshold fires when a count is strictly greater than the value.

    Attributes:
        client_side_medium: Business rules on the form before a Medium risk
        client_side_high: Business rules on the form before a High risk
        stage_medium: Steps in one synchronous stage before a Medium risk
        stage_high: Steps in one synchronous stage before a High risk
        pre_validation_max: Steps allowed in PreValidation
        async_medium: Async steps before a Medium risk
        async_high: Async steps before a High risk
        async_external_calls: Async steps with external calls before a Low risk
        total_sync_high: Client + synchronous steps before a High risk
        flow_count_medium: Flows triggered by one event before a Medium risk
    """
    client_side_medium: int = 5
    client_side_high: int = 10
    stage_medium: int = 3
    stage_high: int = 5
    pre_validation_max: int = 2
    async_medium: int = 10
    async_high: int = 20
    async_external_calls: int = 5
    total_sync_high: int = 10
    flow_count_medium: int = 5


@dataclass
class TrustConfig:
    """Allow-lists for classifying external domains.

    A domain matches an entry when it equals it or ends with it.

    Attributes:
        trusted_domains: Platform vendor domains
        known_domains: Common third-party SaaS domains
        high_call_count: References to one domain before a Low risk factor
    """
    trusted_domains: list = field(default_factory=lambda: [
        "microsoft.com",
        "dynamics.com",
        "azure.com",
        "office.com",
        "office365.com",
        "microsoftonline.com",
        "windows.net",
        "powerapps.com",
        "powerplatform.com",
        "crm.dynamics.com",
    ])
    known_domains: list = field(default_factory=lambda: [
        "stripe.com",
        "twilio.com",
        "sendgrid.com",
        "mailchimp.com",
        "slack.com",
        "github.com",
        "googleapis.com",
        "cloudinary.com",
        "auth0.com",
        "okta.com",
        "salesforce.com",
        "hubspot.com",
        "zendesk.com",
        "intercom.io",
        "segment.com",
        "amplitude.com",
    ])
    high_call_count: int = 5


@dataclass
class OutputConfig:
    """Configuration for output and reporting.

    Attributes:
        output_dir: Directory for output files
        generate_json: Whether to write the JSON report
        report_filename: Name of the JSON report file
    """
    output_dir: str = "output"
    generate_json: bool = True
    report_filename: str = "tracery_results.json"

    def __post_init__(self):
        """Allow the output directory to be overridden from the environment."""
        env_dir = os.environ.get("TRACERY_OUTPUT_DIR")
        if env_dir and self.output_dir == "output":
            self.output_dir = env_dir


@dataclass
class TraceryConfig:
    """Main configuration container for tracery.

    Usage:
        config = TraceryConfig()  # Uses all defaults
        config = TraceryConfig(analysis=AnalysisConfig(stage_medium=4))
    """
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    trust: TrustConfig = field(default_factory=TrustConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Verbosity level for progress output
    verbose: bool = True
    debug: bool = False

    @classmethod
    def from_dict(cls, config_dict: dict) -> "TraceryConfig":
        """Create configuration from a dictionary.

        Useful for loading from JSON files or CLI arguments.
        """
        return cls(
            analysis=AnalysisConfig(**config_dict.get("analysis", {})),
            trust=TrustConfig(**config_dict.get("trust", {})),
            output=OutputConfig(**config_dict.get("output", {})),
            verbose=config_dict.get("verbose", True),
            debug=config_dict.get("debug", False)
        )

    def to_dict(self) -> dict:
        """Convert configuration to dictionary for serialization."""
        return asdict(self)


# Default global configuration instance
_default_config: Optional[TraceryConfig] = None


def get_config() -> TraceryConfig:
    """Get the global configuration instance."""
    global _default_config
    if _default_config is None:
        _default_config = TraceryConfig()
    return _default_config


def set_config(config: TraceryConfig) -> None:
    """Set the global configuration instance."""
    global _default_config
    _default_config = config
