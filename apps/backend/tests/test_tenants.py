import uuid

import pytest

from portal_analytics.core.config import settings
from portal_analytics.models import Organization
from portal_analytics.services.tenants import TenantContext, resolve_tenant

OPERATOR_ALIASES = sorted(settings.operator_alias_set)


def test_project_by_tracking_id(store, tenants):
    assert resolve_tenant(store, "AP-0001") == TenantContext(tenants["acme_org"], tenants["acme_project"])


def test_project_by_id(store, tenants):
    ctx = resolve_tenant(store, tenants["acme_project"])
    assert ctx == TenantContext(tenants["acme_org"], tenants["acme_project"])


def test_project_by_domain(store, tenants):
    ctx = resolve_tenant(store, "acmeplumbing.com")
    assert ctx == TenantContext(tenants["acme_org"], tenants["acme_project"])


def test_non_tenant_project_is_ignored(store, tenants):
    assert resolve_tenant(store, "AP-INTERNAL") == TenantContext(None, None)


@pytest.mark.parametrize("alias", OPERATOR_ALIASES)
@pytest.mark.parametrize("transform", [str.lower, str.upper, str.title])
def test_operator_aliases_resolve_to_operator_project(store, tenants, alias, transform):
    ctx = resolve_tenant(store, transform(alias))
    assert ctx.org_id == tenants["operator_org"]
    assert ctx.project_id == tenants["operator_project"]


def test_org_by_slug(store, tenants):
    assert resolve_tenant(store, "acme-plumbing") == TenantContext(tenants["acme_org"], None)


def test_org_by_id_has_no_project(store, tenants):
    assert resolve_tenant(store, tenants["acme_org"]) == TenantContext(tenants["acme_org"], None)


def test_operator_alias_falls_back_to_org_slug_fragment(store, db):
    # no operator tenant project yet, only an org whose slug contains the fragment
    db.add(Organization(id="3c1b6d0e-8f77-4f0a-b0a4-6a8e2b1c9d11", name="Uptrade", slug="uptrade-agency"))
    db.commit()

    ctx = resolve_tenant(store, "UM-UPTRADE01")
    assert ctx == TenantContext("3c1b6d0e-8f77-4f0a-b0a4-6a8e2b1c9d11", None)


def test_slug_fragment_only_applies_to_operator_aliases(store, db):
    db.add(Organization(id="3c1b6d0e-8f77-4f0a-b0a4-6a8e2b1c9d11", name="Uptrade", slug="uptrade-agency"))
    db.commit()

    assert resolve_tenant(store, "uptrade-other") == TenantContext(None, None)


def test_unknown_uuid_is_taken_as_org(store, tenants):
    raw = str(uuid.uuid4())
    assert resolve_tenant(store, raw) == TenantContext(raw, None)


@pytest.mark.parametrize("identifier", ["not-a-tenant", "GWA-12345", "acme plumbing"])
def test_unresolvable_identifier(store, tenants, identifier):
    ctx = resolve_tenant(store, identifier)
    assert ctx == TenantContext(None, None)
    assert not ctx.resolved


@pytest.mark.parametrize("identifier", [None, ""])
def test_empty_identifier_skips_lookups(identifier):
    class NoLookups:
        def __getattr__(self, name):
            raise AssertionError(f"unexpected store call {name}")

    assert resolve_tenant(NoLookups(), identifier) == TenantContext(None, None)
