from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from portal_analytics.core.config import Settings, settings as default_settings
from portal_analytics.telemetry_utils import is_uuid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantContext:
    org_id: Optional[str] = None
    project_id: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.org_id is not None


UNRESOLVED = TenantContext()


def resolve_tenant(store, identifier: str | None, settings: Settings = default_settings) -> TenantContext:
    """
    Map a tracker-supplied identifier to (org_id, project_id).

    Order, first match wins:
      1. tenant project by tracking id / id / domain
      2. operator alias -> operator's own tenant project by domain
      3. organization by slug or id (operator aliases also match a slug fragment)
      4. a bare UUID is taken as the org id
      5. unresolved
    Read-only. A miss is a normal outcome, not an error.
    """
    if not identifier:
        return UNRESOLVED

    project = store.find_tenant_project(identifier)
    if project is not None:
        return TenantContext(org_id=project.org_id, project_id=project.id)

    is_operator_site = identifier.lower() in settings.operator_alias_set

    if is_operator_site:
        operator_project = store.find_tenant_project_by_domain(settings.operator_domain)
        if operator_project is not None:
            return TenantContext(org_id=operator_project.org_id, project_id=operator_project.id)

    org = store.find_organization(
        identifier,
        slug_fragment=settings.operator_slug_fragment if is_operator_site else None,
    )
    if org is not None:
        # org-level tracking, no specific project
        return TenantContext(org_id=org.id, project_id=None)

    if is_uuid(identifier):
        return TenantContext(org_id=identifier, project_id=None)

    logger.warning("could not resolve tenant %r", identifier)
    return UNRESOLVED
