"""Minimal AAD Graph (graph.windows.net) client for directory lookups.

The Data Lake tooling resolves users through the AAD Graph API (for example to show who owns a job or
an ACL entry). The client is bound to an AAD-audience credential and to one tenant.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from .auth import BearerCredential
from .rest_client import RestClient


@dataclass
class DirectoryUser:
    object_id: str
    display_name: Optional[str]
    user_principal_name: Optional[str]
    mail: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DirectoryUser":
        return cls(
            object_id=data.get("objectId", ""),
            display_name=data.get("displayName"),
            user_principal_name=data.get("userPrincipalName"),
            mail=data.get("mail"),
        )


class GraphRbacClient(RestClient):
    API_VERSION = "1.6"

    def __init__(self, credential: BearerCredential, tenant_id: str, base_url: str = "https://graph.windows.net"):
        if not tenant_id:
            raise ValueError("GraphRbacClient requires a tenant_id")
        super().__init__(credential)
        self.tenant_id = tenant_id
        self.base = base_url.rstrip("/")

    def get_user(self, upn_or_object_id: str) -> DirectoryUser:
        """Look up a user by UPN (tim@contoso.com) or object ID."""
        url = f"{self.base}/{self.tenant_id}/users/{requests.utils.quote(upn_or_object_id, safe='')}"
        return DirectoryUser.from_dict(self._get(url))
