"""Azure Resource Manager clients for Data Lake Analytics and Data Lake Store accounts.

Both clients are bound to an ARM-audience credential and a subscription. They cover the account
lookups the samples need: fetch one account by resource group + name, or list accounts.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .auth import BearerCredential
from .rest_client import RestClient


@dataclass
class DataLakeAccount:
    """Subset of an ARM account resource; `properties` holds the raw provider properties."""
    id: str
    name: str
    location: str
    provisioning_state: Optional[str] = None
    endpoint: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DataLakeAccount":
        props = data.get("properties") or {}
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            location=data.get("location", ""),
            provisioning_state=props.get("provisioningState"),
            endpoint=props.get("endpoint"),
            properties=props,
        )


class _AccountManagementClient(RestClient):
    API_VERSION = "2016-11-01"
    PROVIDER = ""

    def __init__(self, credential: BearerCredential, subscription_id: str, base_url: str = "https://management.azure.com"):
        if not subscription_id:
            raise ValueError(f"{type(self).__name__} requires a subscription_id")
        super().__init__(credential)
        self.subscription_id = subscription_id
        self.base = base_url.rstrip("/")

    def _accounts_url(self, resource_group: Optional[str] = None) -> str:
        url = f"{self.base}/subscriptions/{self.subscription_id}"
        if resource_group:
            url += f"/resourceGroups/{resource_group}"
        return f"{url}/providers/{self.PROVIDER}/accounts"

    def get_account(self, resource_group: str, account_name: str) -> DataLakeAccount:
        """Return one account. A missing account raises `requests.HTTPError` (404)."""
        data = self._get(f"{self._accounts_url(resource_group)}/{account_name}")
        return DataLakeAccount.from_dict(data)

    def list_accounts(self, resource_group: Optional[str] = None) -> List[DataLakeAccount]:
        """List accounts in the subscription, or in one resource group. Follows `nextLink` paging."""
        accounts: List[DataLakeAccount] = []
        url: Optional[str] = self._accounts_url(resource_group)
        params: Optional[Dict[str, Any]] = None
        while url:
            data = self._get(url, params=params)
            accounts.extend(DataLakeAccount.from_dict(a) for a in data.get("value", []))
            url = data.get("nextLink")
            # nextLink already carries api-version and the skip token
            params = {"api-version": None} if url else None
        return accounts


class DataLakeAnalyticsAccountClient(_AccountManagementClient):
    PROVIDER = "Microsoft.DataLakeAnalytics"


class DataLakeStoreAccountClient(_AccountManagementClient):
    PROVIDER = "Microsoft.DataLakeStore"
