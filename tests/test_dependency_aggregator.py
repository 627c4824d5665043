"""
Tests for the external endpoint inventory.
"""

from tracery.analysis.dependency_aggregator import DependencyAggregator
from tracery.config import TrustConfig
from tracery.model.schemas import AutomationType, ExecutionMode, Severity, TrustLevel


class TestDeduplication:
    """Endpoints are keyed by lower-cased domain."""

    def test_same_domain_merges_and_upgrades_to_https(self, make_flow) -> None:
        flows = [make_flow(urls=("https://API.Example.com/x", "http://api.example.com/y"))]
        endpoints = DependencyAggregator().aggregate(flows, [])

        assert len(endpoints) == 1
        endpoint = endpoints[0]
        assert endpoint.domain == "api.example.com"
        assert endpoint.protocol == "https"
        assert endpoint.call_count == 2
        assert endpoint.url == "https://API.Example.com/x"

    def test_http_upgrades_when_https_seen_later(self, make_flow) -> None:
        flows = [make_flow(urls=("http://api.example.com/y",)), make_flow(urls=("https://api.example.com/x",))]
        assert DependencyAggregator().aggregate(flows, [])[0].protocol == "https"

    def test_aggregation_is_idempotent(self, make_flow, make_script) -> None:
        """Running twice over the same input gives the same inventory."""
        flows = [make_flow(urls=("https://api.example.com/x", "http://hooks.example.org/y"))]
        scripts = [make_script("fetch('https://api.stripe.com/v1/charges')")]
        aggregator = DependencyAggregator()

        first = [e.to_dict() for e in aggregator.aggregate(flows, scripts)]
        second = [e.to_dict() for e in aggregator.aggregate(flows, scripts)]
        assert first == second


class TestSources:
    """Where each reference was detected."""

    def test_flow_and_script_sources(self, make_flow, make_script) -> None:
        flow = make_flow(name="Notify", urls=("https://api.stripe.com/v1/a",))
        script = make_script("axios.get('https://api.stripe.com/v1/b')", name="new_/form.js")

        endpoint = DependencyAggregator().aggregate([flow], [script])[0]
        flow_source, script_source = endpoint.detected_in

        assert (flow_source.automation_type, flow_source.mode, flow_source.entity) == (
            AutomationType.FLOW, ExecutionMode.ASYNC, "account"
        )
        assert (script_source.automation_type, script_source.mode, script_source.entity) == (
            AutomationType.JAVASCRIPT, ExecutionMode.CLIENT, None
        )
        assert script_source.name == "new_/form.js"

    def test_unanalyzed_resources_are_skipped(self, make_script) -> None:
        resource = make_script("fetch('https://api.example.com')", analysis=None)
        assert DependencyAggregator().aggregate([], [resource]) == []


class TestTrust:
    """Allow-list classification."""

    def test_classify_trust(self) -> None:
        aggregator = DependencyAggregator()

        assert aggregator.classify_trust("foo.crm.dynamics.com") == TrustLevel.TRUSTED
        assert aggregator.classify_trust("api.stripe.com") == TrustLevel.KNOWN
        assert aggregator.classify_trust("random-saas.io") == TrustLevel.UNKNOWN
        assert aggregator.classify_trust("MICROSOFT.COM") == TrustLevel.TRUSTED

    def test_custom_allow_lists(self) -> None:
        aggregator = DependencyAggregator(TrustConfig(trusted_domains=["contoso.com"], known_domains=[]))

        assert aggregator.classify_trust("erp.contoso.com") == TrustLevel.TRUSTED
        assert aggregator.classify_trust("api.stripe.com") == TrustLevel.UNKNOWN

    def test_riskiest_endpoints_first(self, make_flow) -> None:
        flows = [make_flow(urls=(
            "https://login.microsoftonline.com/token",
            "https://api.stripe.com/v1",
            "https://zeta.example.io",
            "https://alpha.example.io",
        ))]
        domains = [e.domain for e in DependencyAggregator().aggregate(flows, [])]

        assert domains == ["alpha.example.io", "zeta.example.io", "api.stripe.com", "login.microsoftonline.com"]


class TestRiskFactors:
    """Per-endpoint risk factors."""

    def test_insecure_unknown_endpoint(self, make_flow) -> None:
        endpoint = DependencyAggregator().aggregate([make_flow(urls=("http://random-saas.io/hook",))], [])[0]

        assert [(f.severity, f.factor) for f in endpoint.risk_factors] == [
            (Severity.HIGH, "Insecure Protocol"),
            (Severity.MEDIUM, "Unknown Endpoint"),
        ]

    def test_client_side_call(self, make_script) -> None:
        endpoint = DependencyAggregator().aggregate([], [make_script("fetch('https://api.stripe.com/x')")])[0]
        assert [f.factor for f in endpoint.risk_factors] == ["Client-Side Call"]

    def test_high_call_frequency(self, make_flow) -> None:
        flows = [make_flow(urls=(f"https://graph.microsoft.com/v1.0/{i}",)) for i in range(5)]
        endpoint = DependencyAggregator().aggregate(flows, [])[0]

        assert endpoint.call_count == 5
        assert [(f.severity, f.factor) for f in endpoint.risk_factors] == [(Severity.LOW, "High Call Frequency")]

    def test_trusted_https_endpoint_has_no_factors(self, make_flow) -> None:
        endpoint = DependencyAggregator().aggregate([make_flow(urls=("https://graph.microsoft.com/v1.0/me",))], [])[0]
        assert endpoint.risk_factors == []
