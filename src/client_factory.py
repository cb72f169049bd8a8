"""Construct typed REST clients from a bearer credential.

Each service kind expects a credential for one audience:

    account-management, store-account-management  -> ARM   (requires subscription_id)
    catalog-management, job-management,
    filesystem-management                         -> Data Lake
    directory-management                          -> AAD Graph (requires tenant_id)

Handing a credential for the wrong audience is rejected up front instead of failing later with a 401.
"""

import logging
from enum import Enum
from typing import Optional

from .analytics_client import CatalogClient, JobClient
from .auth import BearerCredential
from .config import AudienceSettings
from .filesystem_client import FileSystemClient
from .graph_client import GraphRbacClient
from .management_client import DataLakeAnalyticsAccountClient, DataLakeStoreAccountClient
from .rest_client import RestClient

logger = logging.getLogger(__name__)


class ServiceKind(str, Enum):
    ACCOUNT_MANAGEMENT = "account-management"
    STORE_ACCOUNT_MANAGEMENT = "store-account-management"
    CATALOG_MANAGEMENT = "catalog-management"
    JOB_MANAGEMENT = "job-management"
    FILESYSTEM_MANAGEMENT = "filesystem-management"
    DIRECTORY_MANAGEMENT = "directory-management"

    @property
    def is_management_plane(self) -> bool:
        return self in (ServiceKind.ACCOUNT_MANAGEMENT, ServiceKind.STORE_ACCOUNT_MANAGEMENT)

    def expected_audience(self, settings: AudienceSettings) -> str:
        if self.is_management_plane:
            return settings.arm
        if self is ServiceKind.DIRECTORY_MANAGEMENT:
            return settings.aad
        return settings.adl


def make_client(
    kind: ServiceKind,
    credential: BearerCredential,
    subscription_id: Optional[str] = None,
    tenant_id: Optional[str] = None,
    settings: Optional[AudienceSettings] = None,
) -> RestClient:
    """Return a client for `kind` bound to `credential`.

    Raises:
        ValueError: missing subscription_id (management kinds), missing tenant_id (directory kind),
            or a credential scoped to a different audience.
    """
    kind = ServiceKind(kind)
    settings = settings or AudienceSettings()

    expected = kind.expected_audience(settings)
    if credential.audience != expected:
        raise ValueError(
            f"{kind.value} clients need a credential for {expected}, got one for {credential.audience}"
        )
    if kind.is_management_plane and not subscription_id:
        raise ValueError(f"{kind.value} clients require a subscription_id")
    if kind is ServiceKind.DIRECTORY_MANAGEMENT and not tenant_id:
        raise ValueError(f"{kind.value} clients require a tenant_id")

    logger.debug("Creating client", extra={"service_kind": kind.value, "audience": credential.audience})
    if kind is ServiceKind.ACCOUNT_MANAGEMENT:
        return DataLakeAnalyticsAccountClient(credential, subscription_id, base_url=settings.arm_endpoint)
    if kind is ServiceKind.STORE_ACCOUNT_MANAGEMENT:
        return DataLakeStoreAccountClient(credential, subscription_id, base_url=settings.arm_endpoint)
    if kind is ServiceKind.CATALOG_MANAGEMENT:
        return CatalogClient(credential, dns_suffix=settings.adla_dns_suffix)
    if kind is ServiceKind.JOB_MANAGEMENT:
        return JobClient(credential, dns_suffix=settings.adla_dns_suffix)
    if kind is ServiceKind.FILESYSTEM_MANAGEMENT:
        return FileSystemClient(credential, dns_suffix=settings.adls_dns_suffix)
    return GraphRbacClient(credential, tenant_id, base_url=settings.graph_endpoint)
