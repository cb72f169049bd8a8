"""Data Lake Analytics data-plane clients: U-SQL catalog and job management.

These clients talk to `https://{account}.azuredatalakeanalytics.net` and need a credential for the
Data Lake audience (https://datalake.azure.net/). The account name is passed per call, so one client
can address several accounts.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .auth import BearerCredential
from .rest_client import RestClient


class _AnalyticsDataPlaneClient(RestClient):
    def __init__(self, credential: BearerCredential, dns_suffix: str = "azuredatalakeanalytics.net"):
        super().__init__(credential)
        self.dns_suffix = dns_suffix

    def _base(self, account_name: str) -> str:
        return f"https://{account_name}.{self.dns_suffix}"


class CatalogClient(_AnalyticsDataPlaneClient):
    """Read access to the U-SQL catalog (databases and tables)."""

    API_VERSION = "2016-11-01"

    def list_databases(self, account_name: str) -> List[Dict[str, Any]]:
        url = f"{self._base(account_name)}/catalog/usql/databases"
        return self._get(url).get("value", [])

    def get_database(self, account_name: str, database_name: str) -> Dict[str, Any]:
        url = f"{self._base(account_name)}/catalog/usql/databases/{database_name}"
        return self._get(url)

    def list_tables(self, account_name: str, database_name: str, schema_name: str = "dbo") -> List[Dict[str, Any]]:
        url = f"{self._base(account_name)}/catalog/usql/databases/{database_name}/schemas/{schema_name}/tables"
        return self._get(url).get("value", [])


@dataclass
class JobInformation:
    """Job submission payload. Only U-SQL jobs are modelled."""
    name: str
    script: str
    degree_of_parallelism: int = 1
    type: str = "USql"
    priority: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "degreeOfParallelism": self.degree_of_parallelism,
            "properties": {"type": self.type, "script": self.script},
        }
        if self.priority is not None:
            body["priority"] = self.priority
        return body


class JobClient(_AnalyticsDataPlaneClient):
    """Submit, inspect, list and cancel Data Lake Analytics jobs."""

    API_VERSION = "2016-11-01"

    def create_job(self, account_name: str, job_id: Union[str, uuid.UUID], job: JobInformation) -> Dict[str, Any]:
        """Submit a job under the caller-chosen `job_id` (a GUID)."""
        url = f"{self._base(account_name)}/jobs/{job_id}"
        return self._put(url, job.to_dict())

    def get_job(self, account_name: str, job_id: Union[str, uuid.UUID]) -> Dict[str, Any]:
        return self._get(f"{self._base(account_name)}/jobs/{job_id}")

    def list_jobs(self, account_name: str, top: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"$top": top} if top else None
        return self._get(f"{self._base(account_name)}/jobs", params=params).get("value", [])

    def cancel_job(self, account_name: str, job_id: Union[str, uuid.UUID]) -> None:
        self._post(f"{self._base(account_name)}/jobs/{job_id}/CancelJob")
