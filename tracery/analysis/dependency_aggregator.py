"""
Dependency Aggregator
=====================

Collapses every external endpoint referenced by flows and scripts into a
deduplicated, risk-scored inventory.

Design Decisions:
-----------------
1. Endpoints are keyed by lower-cased domain; the first URL seen is kept as
   the sample URL
2. https wins over http once any call to the domain uses it
3. Flows are recorded as Async sources; scripts as Client sources with no
   owning entity
4. Endpoints are returned riskiest first: Unknown, Known, then Trusted,
   each group ordered by domain
"""

from typing import Optional

from ..model.schemas import (
    AutomationType, ExecutionMode, ExternalCallSource, ExternalEndpoint,
    RiskFactor, Severity, TrustLevel
)
from ..model.artifacts import Flow, WebResource
from ..parsers.common import protocol_of
from ..config import TrustConfig


class DependencyAggregator:
    """Builds the external endpoint inventory.

    Usage:
        aggregator = DependencyAggregator()
        endpoints = aggregator.aggregate(flows, web_resources)

        for endpoint in endpoints:
            print(endpoint.domain, endpoint.trust.value, endpoint.call_count)
    """

    def __init__(self, config: Optional[TrustConfig] = None):
        """Initialize the aggregator.

        Args:
            config: Domain allow-lists (uses defaults if None)
        """
        self.config = config or TrustConfig()

    def aggregate(self, flows: list[Flow], web_resources: list[WebResource]) -> list[ExternalEndpoint]:
        """Aggregate external calls from flows and script web resources.

        Args:
            flows: All flows in scope, with parsed definitions
            web_resources: All web resources in scope; only analyzed ones count

        Returns:
            List of ExternalEndpoint sorted by trust rank then domain
        """
        endpoints: dict[str, ExternalEndpoint] = {}

        for flow in flows:
            for call in flow.definition.external_calls:
                self._add_call(endpoints, call.domain, call.url, ExternalCallSource(
                    automation_type=AutomationType.FLOW,
                    name=flow.name,
                    id=flow.id,
                    entity=flow.entity,
                    mode=ExecutionMode.ASYNC,
                    confidence=call.confidence,
                ))

        for resource in web_resources:
            if resource.analysis is None:
                continue
            for call in resource.analysis.external_calls:
                self._add_call(endpoints, call.domain, call.url, ExternalCallSource(
                    automation_type=AutomationType.JAVASCRIPT,
                    name=resource.name,
                    id=resource.id,
                    entity=None,
                    mode=ExecutionMode.CLIENT,
                    confidence=call.confidence,
                ))

        for endpoint in endpoints.values():
            endpoint.trust = self.classify_trust(endpoint.domain)
            endpoint.risk_factors = self.assess_risk_factors(endpoint)

        return sorted(endpoints.values(), key=lambda e: (e.trust.rank, e.domain))

    @staticmethod
    def _add_call(endpoints: dict, domain: str, url: str, source: ExternalCallSource) -> None:
        key = (domain or "unknown").lower()
        endpoint = endpoints.get(key)

        if endpoint is None:
            endpoints[key] = ExternalEndpoint(
                url=url,
                domain=key,
                protocol=protocol_of(url),
                detected_in=[source],
                call_count=1,
            )
            return

        endpoint.detected_in.append(source)
        endpoint.call_count += 1
        if endpoint.protocol == "http" and protocol_of(url) == "https":
            endpoint.protocol = "https"

    def classify_trust(self, domain: str) -> TrustLevel:
        """Classify a domain against the trusted and known allow-lists."""
        domain = (domain or "").lower()

        if any(domain == d or domain.endswith(d) for d in self.config.trusted_domains):
            return TrustLevel.TRUSTED
        if any(domain == d or domain.endswith(d) for d in self.config.known_domains):
            return TrustLevel.KNOWN
        return TrustLevel.UNKNOWN

    def assess_risk_factors(self, endpoint: ExternalEndpoint) -> list[RiskFactor]:
        """Compute the risk factors of one endpoint, most severe first."""
        factors = []

        if endpoint.protocol == "http":
            factors.append(RiskFactor(
                severity=Severity.HIGH,
                factor="Insecure Protocol",
                description="Endpoint uses HTTP instead of HTTPS, exposing data to interception",
                recommendation="Migrate to HTTPS to ensure data is encrypted in transit",
            ))

        modes = {source.mode for source in endpoint.detected_in}

        if ExecutionMode.SYNC in modes:
            factors.append(RiskFactor(
                severity=Severity.CRITICAL,
                factor="Synchronous External Call",
                description="External call is made from synchronous automation, blocking the database transaction",
                recommendation=(
                    "Move external calls to asynchronous plugins or flows to avoid "
                    "transaction locks and timeouts"
                ),
            ))

        if ExecutionMode.CLIENT in modes:
            factors.append(RiskFactor(
                severity=Severity.MEDIUM,
                factor="Client-Side Call",
                description="External call is made from client-side JavaScript, exposing the endpoint to end users",
                recommendation=(
                    "Consider moving sensitive API calls to server-side (plugins/flows) "
                    "to protect credentials and reduce CORS issues"
                ),
            ))

        if endpoint.trust == TrustLevel.UNKNOWN:
            factors.append(RiskFactor(
                severity=Severity.MEDIUM,
                factor="Unknown Endpoint",
                description="External endpoint is not from a trusted or known provider",
                recommendation=(
                    "Verify the endpoint is legitimate, review security practices, "
                    "and document the integration"
                ),
            ))

        if endpoint.call_count >= self.config.high_call_count:
            factors.append(RiskFactor(
                severity=Severity.LOW,
                factor="High Call Frequency",
                description=f"Endpoint is called from {endpoint.call_count} different automation components",
                recommendation="Consider caching or consolidating calls to reduce external dependencies",
            ))

        return sorted(factors, key=lambda f: f.severity.order)
