"""Tests for the validation orchestrator.

End-to-end runs over the fixture manifests, with probes served by an
httpx.MockTransport.
"""

import httpx
import pytest

from conftest import BASE_URL, MANIFEST_URL, TEST_SECRET, MockSite
from agentmanifest.config import ValidatorConfig
from agentmanifest.credentials import HmacCredentialIssuer
from agentmanifest.models import Severity, ValidationCheck, ValidationResult
from agentmanifest.probes import ManifestProber
from agentmanifest.validator import (
    ManifestValidator,
    compute_badges,
    endpoints_reachable,
    validate_manifest_object,
)


def _site_for(manifest, extra=None):
    routes = {("GET", MANIFEST_URL): httpx.Response(200, json=manifest)}
    routes.update(extra or {})
    return MockSite(routes)


def _assert_pass_rule(result):
    blocking = [c for c in result.checks if not c.passed and c.severity == Severity.ERROR]
    assert result.passed is (not blocking)
    assert (result.verification_token is not None) is result.passed


class TestValidateUrl:
    """Test validation of served manifests."""

    @pytest.mark.asyncio
    async def test_free_manifest_passes(self, make_validator, v03_free_manifest, issuer):
        site = _site_for(v03_free_manifest, {("GET", f"{BASE_URL}/additives"): httpx.Response(200, json=[])})
        result = await make_validator(site).validate_url("api.example.com/")

        assert result.passed is True
        assert result.url == BASE_URL
        assert result.spec_version == "agentmanifest-0.3"
        assert result.schema_valid is True
        assert result.endpoints_reachable is True
        assert result.operationally_complete is True
        assert result.badges == ()
        assert result.errors == []
        assert [c.name for c in result.checks][:3] == ["manifest_reachability", "schema_validity", "spec_version"]
        assert result.find("endpoint_/additives").passed is True
        _assert_pass_rule(result)

        claims = issuer.verify_token(result.verification_token)
        assert claims["url"] == BASE_URL
        assert claims["spec_version"] == "agentmanifest-0.3"
        assert claims["validated_at"] == result.validated_at

    @pytest.mark.asyncio
    async def test_paid_manifest_badges(self, make_validator, v03_paid_manifest):
        site = _site_for(v03_paid_manifest, {
            ("GET", f"{BASE_URL}/v1/lanes"): httpx.Response(200),
            ("GET", "https://freight.example.com/v1/onboard"): httpx.Response(200),
            ("GET", "https://freight.example.com/v1/usage"): httpx.Response(401),
        })
        result = await make_validator(site).validate_url(BASE_URL)

        assert result.passed is True
        assert result.payment_flow_verified is True
        assert result.auth_verified is False
        assert result.badges == ("payment-ready", "budget-aware")
        # missing key_provisioning_url only warns
        assert [c.name for c in result.warnings] == ["auth_api_key_provisioning"]
        _assert_pass_rule(result)

    @pytest.mark.asyncio
    async def test_legacy_prepaid_manifest(self, make_validator, v02_prepaid_manifest):
        site = _site_for(v02_prepaid_manifest, {
            ("GET", f"{BASE_URL}/status"): httpx.Response(200),
            ("HEAD", "https://cite.example.com/checkout"): httpx.Response(200),
            ("GET", "https://cite.example.com/keys"): httpx.Response(401),
        })
        result = await make_validator(site).validate_url(BASE_URL)

        assert result.passed is True
        assert result.auth_verified is True
        assert result.payment_flow_verified is True
        assert result.badges == ("auth-verified", "payment-ready")
        assert result.spec_version == "agentmanifest-0.2"

    @pytest.mark.asyncio
    async def test_unreachable_manifest_stops_early(self, make_validator):
        site = MockSite({("GET", MANIFEST_URL): httpx.Response(500)})
        result = await make_validator(site).validate_url(BASE_URL)

        assert result.passed is False
        assert result.spec_version is None
        assert result.verification_token is None
        assert [c.name for c in result.checks] == ["manifest_reachability"]
        assert len(site.requests) == 1

    @pytest.mark.asyncio
    async def test_server_error_endpoint_fails(self, make_validator, v03_free_manifest):
        site = _site_for(v03_free_manifest, {("GET", f"{BASE_URL}/additives"): httpx.Response(502)})
        result = await make_validator(site).validate_url(BASE_URL)

        assert result.passed is False
        assert result.endpoints_reachable is False
        assert result.verification_token is None
        assert [c.name for c in result.errors] == ["endpoint_/additives"]

    @pytest.mark.asyncio
    async def test_escalated_probe_failures_block(self, v03_paid_manifest):
        config = ValidatorConfig(jwt_secret=TEST_SECRET, escalate_probe_warnings=True)
        site = _site_for(v03_paid_manifest, {("GET", f"{BASE_URL}/v1/lanes"): httpx.Response(200)})
        validator = ManifestValidator(
            config=config,
            prober=ManifestProber.from_config(config, transport=site.transport),
        )
        result = await validator.validate_url(BASE_URL)

        assert result.passed is False
        assert "v03_payment_onboarding_reachable" in [c.name for c in result.errors]
        _assert_pass_rule(result)

    @pytest.mark.asyncio
    async def test_unparseable_endpoint_path_becomes_check(self, make_validator, v03_free_manifest):
        v03_free_manifest["endpoints"][0]["path"] = "//[additives"
        site = _site_for(v03_free_manifest)
        result = await make_validator(site).validate_url(BASE_URL)

        check = result.find("endpoint_//[additives")
        assert check.passed is False
        assert check.severity == Severity.WARNING
        assert "not an http(s) URL" in check.message
        _assert_pass_rule(result)

    @pytest.mark.asyncio
    async def test_unparseable_base_url_becomes_check(self, make_validator):
        site = MockSite()
        result = await make_validator(site).validate_url("https://[bad")

        assert result.passed is False
        assert [(c.name, c.severity) for c in result.checks] == [("manifest_reachability", Severity.ERROR)]
        assert "Failed to fetch manifest" in result.checks[0].message
        assert site.requests == []


class TestValidateDocument:
    """Test validation of local manifests."""

    @pytest.mark.asyncio
    async def test_local_paid_manifest_makes_no_requests(self, make_validator, v03_paid_manifest):
        site = MockSite()
        result = await make_validator(site).validate_document(v03_paid_manifest, "freight.json")

        assert site.requests == []
        assert result.url == "freight.json"
        assert result.passed is True
        assert result.payment_flow_verified is False
        assert result.badges == ("budget-aware",)
        assert result.find("manifest_reachability").severity == Severity.INFO
        assert "network fetch skipped" in result.find("manifest_reachability").message
        assert result.find("endpoint_reachability").severity == Severity.INFO
        assert result.find("v03_payment_onboarding_reachable").severity == Severity.INFO
        _assert_pass_rule(result)

    @pytest.mark.asyncio
    async def test_postpaid_cycle_null_fails(self, make_validator, v03_paid_manifest):
        v03_paid_manifest["payment"]["settlement"] = {"type": "postpaid_cycle", "cycle": None}
        result = await make_validator().validate_document(v03_paid_manifest)

        assert result.passed is False
        assert result.verification_token is None
        assert result.schema_valid is False
        assert {"schema_validity", "payment_settlement"} <= {c.name for c in result.errors}

    @pytest.mark.asyncio
    async def test_short_current_agent_notes(self, make_validator, v03_free_manifest):
        v03_free_manifest["agent_notes"] = ("account api key free tier. " * 10)[:149]
        result = await make_validator().validate_document(v03_free_manifest)

        assert result.passed is False
        assert result.operationally_complete is False
        assert {"schema_validity", "agent_notes_length", "operationally_complete"} <= {c.name for c in result.errors}

    @pytest.mark.asyncio
    async def test_legacy_notes_threshold(self, make_validator, v02_manifest):
        v02_manifest["agent_notes"] = ("account api key free tier. " * 10)[:50]
        result = await make_validator().validate_document(v02_manifest)
        assert result.passed is True
        assert result.operationally_complete is True

    @pytest.mark.asyncio
    async def test_paid_notes_without_payment_terms_warn(self, make_validator, v03_paid_manifest):
        v03_paid_manifest["agent_notes"] = (
            "Create an account on the website and copy the API key from the dashboard. "
            "Send it in the X-API-Key header on every request. Pricing is 0.002 USD per request "
            "and is charged in advance."
        )
        result = await make_validator().validate_document(v03_paid_manifest)

        check = result.find("operationally_complete")
        assert check.passed is True
        assert check.severity == Severity.WARNING
        assert result.passed is True

    @pytest.mark.asyncio
    async def test_boilerplate_description_warns(self, make_validator, v02_manifest):
        v02_manifest["description"] = "This API provides " + v02_manifest["description"]
        result = await make_validator().validate_document(v02_manifest)

        assert result.find("description_quality").severity == Severity.WARNING
        assert result.passed is True

    @pytest.mark.asyncio
    async def test_unknown_version(self, make_validator, v02_manifest):
        v02_manifest["spec_version"] = "agentmanifest-0.1"
        result = await make_validator().validate_document(v02_manifest)

        assert result.passed is False
        assert result.spec_version == "agentmanifest-0.1"
        assert result.find("spec_version").passed is False
        assert result.find("agent_notes_length").passed is True

    @pytest.mark.asyncio
    async def test_non_object_manifest(self, make_validator):
        result = await make_validator().validate_document(["not", "a", "manifest"])
        assert result.passed is False
        assert [c.name for c in result.checks] == ["manifest_reachability"]

    @pytest.mark.asyncio
    async def test_failures_do_not_short_circuit(self, make_validator):
        result = await make_validator().validate_document({"spec_version": "agentmanifest-0.3"})

        names = [c.name for c in result.checks]
        for name in [
            "schema_validity",
            "description_length",
            "agent_notes_length",
            "pricing_consistency",
            "primary_category",
            "categories",
            "authentication_consistency",
            "operationally_complete",
        ]:
            assert name in names
        _assert_pass_rule(result)

    @pytest.mark.asyncio
    async def test_repeat_validation_is_stable(self, make_validator, v03_paid_manifest):
        validator = make_validator()
        first = await validator.validate_document(v03_paid_manifest)
        second = await validator.validate_document(v03_paid_manifest)
        assert [c.to_dict() for c in first.checks] == [c.to_dict() for c in second.checks]
        assert first.passed is second.passed
        assert first.badges == second.badges

    @pytest.mark.asyncio
    async def test_module_wrapper(self, config, v03_free_manifest):
        result = await validate_manifest_object(v03_free_manifest, "inline", config=config)
        assert result.passed is True
        assert result.url == "inline"
        claims = HmacCredentialIssuer(TEST_SECRET).verify_token(result.verification_token)
        assert claims["url"] == "inline"


class TestDerivedFields:
    """Test helpers that derive result fields."""

    def test_compute_badges_ignores_legacy_budget(self):
        assert compute_badges(True, False, None) == ["auth-verified"]

    def test_endpoints_reachable_without_endpoint_checks(self):
        assert endpoints_reachable([]) is True

    def test_result_dict_shape(self):
        result = ValidationResult(
            url="u",
            validated_at="2026-01-01T00:00:00Z",
            passed=True,
            spec_version="agentmanifest-0.3",
            checks=[ValidationCheck("x", True, "ok", Severity.INFO)],
        )
        data = result.to_dict()
        assert data["checks"] == [{"name": "x", "passed": True, "message": "ok", "severity": "info"}]
        assert set(data) == {
            "url", "validated_at", "passed", "spec_version", "checks", "verification_token",
            "schema_valid", "endpoints_reachable", "auth_verified", "payment_flow_verified",
            "operationally_complete", "badges",
        }

    def test_result_collections_are_immutable(self):
        checks = [ValidationCheck("x", True, "ok", Severity.INFO)]
        badges = ["auth-verified"]
        result = ValidationResult(
            url="u",
            validated_at="2026-01-01T00:00:00Z",
            passed=True,
            spec_version=None,
            checks=checks,
            badges=badges,
        )
        checks.append(ValidationCheck("y", False, "late", Severity.ERROR))
        badges.append("payment-ready")

        assert [c.name for c in result.checks] == ["x"]
        assert result.badges == ("auth-verified",)
        with pytest.raises(AttributeError):
            result.checks.append(checks[1])
        assert result.to_dict()["badges"] == ["auth-verified"]
        assert isinstance(result.to_dict()["checks"], list)
